# finflow/echarts.py
from __future__ import annotations
from typing import Dict

from finflow.constants import CURRENCY
from finflow.sankey import FlowGraph


def make_echarts_sankey_options(
    graph: FlowGraph,
    title: str,
    value_prefix: str = CURRENCY,
    curveness: float = 0.6,
    edge_font_size: int = 11,
    py_value_format: str = ",.0f",   # Python-side number formatting
) -> Dict:
    def fmt(v: float) -> str:
        try:
            return f"{value_prefix}{float(v):{py_value_format}}"
        except (TypeError, ValueError):
            return f"{value_prefix}{v}"

    # ECharts addresses nodes by name, so keep names unique by using the id
    # as the key and showing the display name through the label formatter.
    nodes = [
        {"name": n["id"], "itemStyle": {"color": n["color"]}, "label": {"formatter": n["name"]}}
        for n in graph.nodes
    ]

    # Preformat label into link.name; keep numeric value for thickness
    links = [
        {
            "source": l["from"],
            "target": l["to"],
            "value": float(l["weight"]),
            "name": fmt(l["weight"]),
            "lineStyle": {"color": l["color"]},
        }
        for l in graph.links
    ]

    return {
        "title": {"text": title, "left": "center"},
        "tooltip": {"show": True, "trigger": "item", "triggerOn": "mousemove|click"},
        "series": [{
            "type": "sankey",
            "data": nodes,
            "links": links,
            "nodeGap": 30,
            "nodeWidth": 15,
            "lineStyle": {"curveness": curveness, "opacity": 0.5},
            "label": {"show": True},
            "edgeLabel": {
                "show": True,
                "formatter": "{b}",
                "position": "middle",
                "fontSize": edge_font_size,
                "color": "#000"
            }
        }]
    }
