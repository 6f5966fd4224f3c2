from flask import Flask, jsonify, render_template_string, request

from finflow.aggregation import leftover, total_income, total_spending
from finflow.allocation import plan_status
from finflow.config import configure_logging, load_settings
from finflow.default_catalog import sample_finance_data
from finflow.io import from_dict, to_dict
from finflow.results import InvalidPayload, StorageError
from finflow.sankey import build_flow_graph, make_sankey_figure
from finflow.storage import LocalStore, load_quietly, make_store, save_quietly


def _status_dict(status):
    return {
        "tier": status.tier.value,
        "capacity": status.capacity,
        "total": status.total,
        "difference": status.difference,
        "isOver": status.is_over,
        "label": status.describe(),
    }


def create_app(store=None):
    settings = load_settings()
    configure_logging(settings.log_level)
    app = Flask(__name__)
    if store is None:
        try:
            store = make_store(settings)
        except StorageError:
            # the Sheets store needs a signed-in client; serve from disk instead
            app.logger.warning("Sheets storage needs a Google sign-in; falling back to %s", settings.data_path)
            store = LocalStore(settings.data_path)
    app.config["FINANCE_STORE"] = store

    def current_data():
        return load_quietly(app.config["FINANCE_STORE"]) or sample_finance_data()

    @app.route('/')
    def home():
        data = current_data()
        sankey_html = make_sankey_figure(build_flow_graph(data)).to_html(full_html=False)
        return render_template_string('''
        <html>
        <head>
            <title>Personal Finance Visualizer</title>
            <link rel="stylesheet" href="https://stackpath.bootstrapcdn.com/bootstrap/4.5.2/css/bootstrap.min.css">
        </head>
        <body>
            <div class="container">
                <h1>Personal Finance Visualizer</h1>
                <p>Total Income: <strong>{{ "%.2f"|format(income) }}</strong>
                   &middot; Total Spending: <strong>{{ "%.2f"|format(spending) }}</strong>
                   {% if left > 0 %}&middot; Leftover money: <strong>{{ "%.2f"|format(left) }}</strong>{% endif %}</p>
                <h2>Money Flow</h2>
                {{ sankey_html|safe }}
                <h2>Financial Plan</h2>
                <table class="table table-striped">
                    <tr><th>Tier</th><th>Max Allowed</th><th>Current Total</th><th>Status</th></tr>
                    {% for s in plan %}
                    <tr class="{{ 'table-danger' if s.isOver else '' }}">
                        <td>{{ s.tier }}</td><td>{{ "%.2f"|format(s.capacity) }}</td>
                        <td>{{ "%.2f"|format(s.total) }}</td><td>{{ s.label }}</td>
                    </tr>
                    {% endfor %}
                </table>
            </div>
        </body>
        </html>
        ''', sankey_html=sankey_html, income=total_income(data), spending=total_spending(data),
            left=leftover(data), plan=[_status_dict(s) for s in plan_status(data)])

    @app.route('/api/finance', methods=['GET', 'POST'])
    def finance():
        if request.method == 'POST':
            payload = request.get_json(silent=True)
            if payload is None:
                return {"error": "No data received"}, 400
            try:
                data = from_dict(payload)
            except InvalidPayload as e:
                return {"error": str(e)}, 400
            saved = save_quietly(app.config["FINANCE_STORE"], data)
            return {"success": True, "saved": saved}, 200
        return jsonify(to_dict(current_data()))

    @app.route('/api/sankey')
    def sankey():
        return jsonify(build_flow_graph(current_data()).to_dict())

    @app.route('/api/plan')
    def plan():
        data = current_data()
        return jsonify({
            "totalIncome": total_income(data),
            "tiers": [_status_dict(s) for s in plan_status(data)],
        })

    return app


# Run the application
if __name__ == "__main__":
    create_app().run(debug=True)
