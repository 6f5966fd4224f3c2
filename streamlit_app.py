# streamlit_app.py
import streamlit as st
from streamlit_echarts import st_echarts

from finflow.aggregation import (
    allocation_amount,
    category_total,
    leftover,
    summary_frame,
    total_income,
    total_spending,
)
from finflow.allocation import (
    assign_category,
    assign_category_clamped,
    bucket,
    release_allocation,
    sort_unallocated,
    tier_status,
)
from finflow.auth import sign_in
from finflow.config import configure_logging, load_settings
from finflow.constants import (
    ALLOWED_EXTS,
    ALLOWED_MIME,
    CURRENCY,
    EXPORT_CSV_NAME,
    EXPORT_FILE_NAME,
    MAX_UPLOAD_MB,
)
from finflow.default_catalog import DEFAULT_INCOME_SOURCES, default_subcategories, sample_finance_data
from finflow.echarts import make_echarts_sankey_options
from finflow.io import export_csv, export_json, import_json, validate_upload
from finflow.models import TIER_ORDER, Tier
from finflow import mutations
from finflow.results import AuthError, InvalidPayload, Outcome, StorageError
from finflow.sankey import build_flow_graph, make_sankey_figure
from finflow.storage import load_quietly, make_store, save_quietly

# =======================================================================================
# Helper functions
# =======================================================================================

def _secrets() -> dict:
    # st.secrets raises when no secrets.toml exists; treat that as "no secrets"
    try:
        return {k: st.secrets[k] for k in st.secrets.keys()}
    except Exception:
        return {}

def _rerun():
    st.rerun()

def _money(v: float) -> str:
    return f"{CURRENCY}{v:,.2f}"

def _data():
    return st.session_state["finance_data"]

def _store():
    try:
        return make_store(SETTINGS, client=st.session_state.get("google_client"))
    except StorageError as e:
        st.session_state["store_error"] = str(e)
        return None

def _persist(data) -> bool:
    store = _store()
    if store is None:
        return False
    return save_quietly(store, data)

def _apply(result, rerun: bool = True) -> bool:
    """Commit a MutationResult to session state; surface rejections."""
    if result.outcome is Outcome.REJECTED:
        st.session_state["flash"] = ("warning", result.message)
        # reset widgets so they show the stored value again
        st.session_state["__form_rev"] += 1
    elif result.outcome is Outcome.NOT_FOUND:
        st.session_state["flash"] = ("error", result.message)
    elif result.changed:
        st.session_state["finance_data"] = result.data
        if st.session_state.get("autosave") and not _persist(result.data):
            st.session_state["flash"] = ("error", "Change kept in memory, but saving failed. See logs.")
    if rerun and result.outcome is not Outcome.UNCHANGED:
        _rerun()
    return result.changed

def _load_into_session():
    store = _store()
    data = load_quietly(store) if store is not None else None
    if data is None:
        st.session_state["flash"] = ("info", "No saved data found. Showing the built-in **sample dataset**.")
        data = sample_finance_data()
    st.session_state["finance_data"] = sort_unallocated(data)
    st.session_state["__form_rev"] += 1


# =============== Page setup ===============
SETTINGS = load_settings(_secrets())
configure_logging(SETTINGS.log_level)

st.set_page_config(page_title="Personal Finance Visualizer", layout="wide")
st.title("💶 Personal Finance Visualizer")

THEME_BASE = (st.get_option("theme.base") or "light").lower()
IS_DARK = THEME_BASE == "dark"
PLOTLY_TEMPLATE = "plotly_dark" if IS_DARK else "plotly_white"
ECHR_THEME = "dark" if IS_DARK else "light"

st.markdown("""
<style>
.h2-line {
  display:flex; align-items:center; gap:.6rem;
  font-weight:700; font-size:1.25rem; color: var(--text-color);
  margin: 8px 0 2px 0;
}
.h2-cap { font-size:.95rem; color: var(--secondary-text-color); margin: 0 0 6px 0; }
.sb-h {
  font-weight:700; font-size:1.0rem; color: var(--text-color);
  margin: 4px 0 8px 0; display:flex; gap:.5rem; align-items:center;
}
.tag {
  display:inline-block; padding:.25rem .55rem; border-radius:999px;
  background: var(--secondary-background-color);
  color: var(--primary-color); border: 1px solid var(--primary-color);
  font-weight:600; font-size:.85rem;
}
.tag.over { color:#d62728; border-color:#d62728; }
</style>
""", unsafe_allow_html=True)

def section_header(icon: str, title: str, caption: str | None = None):
    st.divider()
    st.markdown(f'<div class="h2-line">{icon} {title}</div>', unsafe_allow_html=True)
    if caption:
        st.markdown(f'<div class="h2-cap">{caption}</div>', unsafe_allow_html=True)

def sidebar_header(icon: str, title: str):
    st.sidebar.markdown(f'<div class="sb-h">{icon} {title}</div>', unsafe_allow_html=True)

def badge(text: str, over: bool = False):
    cls = "tag over" if over else "tag"
    st.markdown(f'<span class="{cls}">{text}</span>', unsafe_allow_html=True)


st.session_state.setdefault("__form_rev", 0)
st.session_state.setdefault("autosave", not SETTINGS.uses_sheets)

# =======================================================================================
# SIDEBAR (sign-in, storage, import / export)
# =======================================================================================

# 1) SIGN-IN
sidebar_header("🔐", "1) Google sign-in")
if SETTINGS.uses_sheets:
    if st.session_state.get("google_client") is None:
        st.sidebar.caption("Remote storage needs a Google sign-in first.")
        if st.sidebar.button("Sign in with Google", use_container_width=True):
            try:
                session = sign_in(_secrets())
                st.session_state["google_client"] = session.client
                st.session_state["google_account"] = session.account
                st.session_state.pop("finance_data", None)
                _rerun()
            except AuthError as e:
                st.sidebar.error(str(e))
    else:
        st.sidebar.caption(f"Signed in as **{st.session_state.get('google_account')}**")
        if st.sidebar.button("Sign out", use_container_width=True):
            st.session_state.pop("google_client", None)
            st.session_state.pop("google_account", None)
            _rerun()
else:
    st.sidebar.caption("Local storage in use; no sign-in needed.")

# 2) STORAGE
st.sidebar.divider()
sidebar_header("💾", "2) Storage")
if SETTINGS.uses_sheets:
    st.sidebar.caption(f"Google Sheets · `{SETTINGS.collection}/{SETTINGS.document}`")
else:
    st.sidebar.caption(f"Local file · `{SETTINGS.data_path}`")

if "finance_data" not in st.session_state:
    _load_into_session()

st.sidebar.checkbox("Autosave after every change", key="autosave")
col_s1, col_s2 = st.sidebar.columns(2)
if col_s1.button("Save now", use_container_width=True):
    if _persist(_data()):
        st.sidebar.success("Saved.")
    else:
        st.sidebar.error(st.session_state.pop("store_error", None) or "Save failed. See logs.")
if col_s2.button("Reload", use_container_width=True):
    _load_into_session()
    _rerun()

# 3) IMPORT / EXPORT
st.sidebar.divider()
sidebar_header("📦", "3) Import / Export")
uploaded = st.sidebar.file_uploader("Import data (.json)", type=[e.lstrip(".") for e in ALLOWED_EXTS], key="import_upload")
if uploaded is not None and st.session_state.get("__imported_name") != (uploaded.name, uploaded.size):
    ok, msg = validate_upload(uploaded, ALLOWED_EXTS, ALLOWED_MIME, MAX_UPLOAD_MB * 1024 * 1024)
    if not ok:
        st.sidebar.error(msg)
    else:
        try:
            imported = import_json(uploaded.getvalue())
        except InvalidPayload as e:
            st.sidebar.error(str(e))
        else:
            st.session_state["__imported_name"] = (uploaded.name, uploaded.size)
            st.session_state["finance_data"] = imported
            st.session_state["__form_rev"] += 1
            if not _persist(imported):
                st.session_state["flash"] = ("error", "Imported, but saving to storage failed.")
            else:
                st.session_state["flash"] = ("success", f"Imported **{uploaded.name}**.")
            _rerun()

st.sidebar.download_button(
    "Export data (.json)",
    data=export_json(_data()),
    file_name=EXPORT_FILE_NAME,
    mime="application/json",
    use_container_width=True,
)
st.sidebar.download_button(
    "Export table (.csv)",
    data=export_csv(_data()),
    file_name=EXPORT_CSV_NAME,
    mime="text/csv",
    use_container_width=True,
)

with st.sidebar.expander("Sankey Chart Options", expanded=False):
    chart_engine = st.radio("Renderer", ("ECharts", "Plotly"), index=0, horizontal=True)
    chart_height = st.slider("Height (px)", 400, 1500, 800, step=50)

flash = st.session_state.pop("flash", None)
if flash:
    kind, text = flash
    getattr(st, kind)(text)

# =======================================================================================
# MAIN TABS
# =======================================================================================
tab_form, tab_flow, tab_plan = st.tabs(["🧾 Income & Spending", "🌊 Money Flow", "🎯 Financial Plan"])
rev = st.session_state["__form_rev"]

with tab_form:
    data = _data()

    # -----------------------------------
    # Income sources
    # -----------------------------------
    section_header("💼", "Income Sources")
    for src in data.income_sources:
        c1, c2, c3 = st.columns([4, 2, 1])
        label = c1.text_input("Source name", value=src.label, key=f"inc_lbl_{src.id}_{rev}",
                              placeholder=", ".join(DEFAULT_INCOME_SOURCES), label_visibility="collapsed")
        amount = c2.number_input(f"Amount ({CURRENCY})", value=float(src.amount), min_value=0.0, step=50.0,
                                 key=f"inc_amt_{src.id}_{rev}", label_visibility="collapsed")
        if c3.button("🗑️", key=f"inc_del_{src.id}_{rev}", help="Remove income source"):
            _apply(mutations.remove_income_source(data, src.id))
        if label != src.label:
            _apply(mutations.update_income_source(data, src.id, "label", label))
        if amount != src.amount:
            _apply(mutations.update_income_source(data, src.id, "amount", amount))
    if st.button("➕ Add Source", key="add_income"):
        _apply(mutations.add_income_source(data))

    # -----------------------------------
    # Spending categories
    # -----------------------------------
    section_header("🛒", "Spending Categories", "Subcategory amounts can't push total spending above total income.")
    for cat in data.spending_categories:
        with st.container(border=True):
            c1, c2, c3 = st.columns([4, 2, 1])
            cat_label = c1.text_input("Category name", value=cat.label, key=f"cat_lbl_{cat.id}_{rev}",
                                      label_visibility="collapsed", placeholder="Category name")
            c2.markdown(f"**{_money(category_total(cat))}**")
            if c3.button("🗑️", key=f"cat_del_{cat.id}_{rev}", help="Remove category and its subcategories"):
                _apply(mutations.remove_spending_category(data, cat.id))
            if cat_label != cat.label:
                _apply(mutations.update_spending_category(data, cat.id, "label", cat_label))

            for sub in cat.sub_categories:
                s0, s1, s2, s3 = st.columns([0.5, 3.5, 2, 1])
                sub_label = s1.text_input("Subcategory name", value=sub.label, key=f"sub_lbl_{cat.id}_{sub.id}_{rev}",
                                          label_visibility="collapsed", placeholder="Subcategory name")
                sub_amount = s2.number_input(
                    f"Amount ({CURRENCY})", value=float(sub.amount), min_value=0.0, step=50.0,
                    key=f"sub_amt_{cat.id}_{sub.id}_{rev}", label_visibility="collapsed",
                    help=f"Up to {_money(mutations.max_sub_amount(data, cat.id, sub.id))}",
                )
                if s3.button("🗑️", key=f"sub_del_{cat.id}_{sub.id}_{rev}", help="Remove subcategory"):
                    _apply(mutations.remove_sub_category(data, cat.id, sub.id))
                if sub_label != sub.label:
                    _apply(mutations.update_sub_category(data, cat.id, sub.id, "label", sub_label))
                if sub_amount != sub.amount:
                    _apply(mutations.update_sub_category(data, cat.id, sub.id, "amount", sub_amount))

            a1, a2 = st.columns([1, 3])
            if a1.button("➕ Add Subcategory", key=f"sub_add_{cat.id}_{rev}"):
                _apply(mutations.add_sub_category(data, cat.id))
            suggestions = default_subcategories(cat.label, [s.label for s in cat.sub_categories])
            if suggestions:
                pick = a2.selectbox("Suggested", ["—"] + suggestions, key=f"sub_sugg_{cat.id}_{rev}",
                                    label_visibility="collapsed")
                if pick != "—":
                    st.session_state["__form_rev"] += 1
                    _apply(mutations.add_sub_category(data, cat.id, label=pick))
    if st.button("➕ Add Category", key="add_category"):
        _apply(mutations.add_spending_category(data))

    # -----------------------------------
    # Totals
    # -----------------------------------
    section_header("🧮", "Totals")
    m1, m2, m3 = st.columns(3)
    m1.metric("Total Income", _money(total_income(data)))
    m2.metric("Total Spending", _money(total_spending(data)))
    left = leftover(data)
    m3.metric("Leftover money", _money(left) if left > 0 else _money(0))

with tab_flow:
    data = _data()
    section_header("🌊", "Personal Finance Flow", "Income → Total income → Categories → Subcategories")
    graph = build_flow_graph(data)
    if not graph.links:
        st.info("Add income sources and spending categories to see the flow.")
    elif chart_engine == "ECharts":
        options = make_echarts_sankey_options(graph, title="Personal Finance Flow")
        st_echarts(options=options, height=f"{chart_height}px", theme=ECHR_THEME)
    else:
        fig = make_sankey_figure(graph, title="Personal Finance Flow")
        fig.update_layout(template=PLOTLY_TEMPLATE, height=chart_height)
        st.plotly_chart(fig, use_container_width=True)

    section_header("📋", "Category summary")
    st.dataframe(
        summary_frame(data),
        use_container_width=True,
        hide_index=True,
        column_config={
            "Total": st.column_config.NumberColumn(format=f"{CURRENCY}%.2f"),
            "Allocated": st.column_config.NumberColumn(format=f"{CURRENCY}%.2f"),
            "Share of income": st.column_config.NumberColumn(format="%.1f%%"),
        },
    )

with tab_plan:
    data = _data()
    section_header("🎯", "Financial Plan", f"Total Income: {_money(total_income(data))}")

    plan_cols = st.columns(len(TIER_ORDER))
    for col, tier in zip(plan_cols, TIER_ORDER):
        members = bucket(data, tier)
        with col:
            title = "Unallocated Categories" if tier is Tier.UNALLOCATED else f"{tier.value} of Expenses"
            st.markdown(f"#### {title}")
            if tier is not Tier.UNALLOCATED:
                status = tier_status(data, tier)
                st.caption(f"Max Allowed: **{_money(status.capacity)}** · Current Total: **{_money(status.total)}**")
                badge(status.describe(), over=status.is_over)
            for idx, cat in enumerate(members):
                with st.container(border=True):
                    st.markdown(f"**{cat.label or 'Unnamed'}** · {_money(allocation_amount(cat))}")
                    if cat.amount is not None:
                        st.caption(f"Allocated (subcategories total {_money(category_total(cat))})")
                    b1, b2, b3 = st.columns(3)
                    if b1.button("↑", key=f"up_{cat.id}_{rev}", disabled=idx == 0):
                        _apply(assign_category(data, cat.id, tier, idx - 1))
                    if b2.button("↓", key=f"down_{cat.id}_{rev}", disabled=idx == len(members) - 1):
                        _apply(assign_category(data, cat.id, tier, idx + 1))
                    if cat.amount is not None and b3.button("↺", key=f"rel_{cat.id}_{rev}", help="Use subcategory total"):
                        _apply(release_allocation(data, cat.id))

    section_header("🔀", "Move a category")
    if not data.spending_categories:
        st.info("Add spending categories first.")
    else:
        with st.form(key=f"move_form_{rev}"):
            names = {c.id: f"{c.label or 'Unnamed'} ({c.tier.value})" for c in data.spending_categories}
            f1, f2, f3 = st.columns([3, 2, 1])
            cat_id = f1.selectbox("Category", list(names), format_func=names.get)
            target = f2.selectbox("Move to", TIER_ORDER, format_func=lambda t: t.value)
            position = f3.number_input("Position", min_value=1, value=1, step=1)
            clamp = st.checkbox("Trim amount to the tier's remaining headroom", value=False)
            submitted = st.form_submit_button("Move", type="primary")
        if submitted:
            move = assign_category_clamped if clamp else assign_category
            _apply(move(data, cat_id, target, int(position) - 1))
