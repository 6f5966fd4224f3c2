# finflow/sankey.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List
import re

import plotly.graph_objects as go

from finflow.aggregation import category_total
from finflow.constants import (
    CATEGORY_COLORS,
    CURRENCY,
    INCOME_COLORS,
    TOTAL_INCOME_COLOR,
    TOTAL_INCOME_NODE,
)
from finflow.models import FinanceData


@dataclass
class FlowGraph:
    nodes: List[Dict] = field(default_factory=list)   # {id, name, color}
    links: List[Dict] = field(default_factory=list)   # {from, to, weight, color, name}

    def node_index(self) -> Dict[str, int]:
        return {n["id"]: i for i, n in enumerate(self.nodes)}

    def to_dict(self) -> Dict[str, List[Dict]]:
        return {"nodes": list(self.nodes), "links": list(self.links)}


def shade(color: str, factor: float) -> str:
    """Mix a #rrggbb color toward white by ``factor`` (0..1)."""
    parts = re.findall(r"[a-fA-F\d]{2}", color)[:3]
    r, g, b = (int(p, 16) for p in parts) if len(parts) == 3 else (0, 0, 0)
    mix = lambda c: min(round(c + (255 - c) * factor), 255)
    return "#{:02x}{:02x}{:02x}".format(mix(r), mix(g), mix(b))


def _name(label: str) -> str:
    return label.strip() or "Unnamed"


def build_flow_graph(data: FinanceData) -> FlowGraph:
    """
    Flatten the data into income -> total income -> category -> sub-category.
    Always rebuilt from scratch; callers must not hold on to it across edits.
    """
    graph = FlowGraph()

    for i, src in enumerate(data.income_sources):
        color = INCOME_COLORS[i % len(INCOME_COLORS)]
        node_id = f"income-{src.id}"
        graph.nodes.append({"id": node_id, "name": _name(src.label), "color": color})
        graph.links.append({
            "from": node_id, "to": TOTAL_INCOME_NODE,
            "weight": float(src.amount), "color": color, "name": _name(src.label),
        })

    graph.nodes.append({"id": TOTAL_INCOME_NODE, "name": "Total Income", "color": TOTAL_INCOME_COLOR})

    for i, cat in enumerate(data.spending_categories):
        base = CATEGORY_COLORS[i % len(CATEGORY_COLORS)]
        cat_node = f"category-{cat.id}"
        graph.nodes.append({"id": cat_node, "name": _name(cat.label), "color": base})
        graph.links.append({
            "from": TOTAL_INCOME_NODE, "to": cat_node,
            "weight": category_total(cat), "color": base, "name": _name(cat.label),
        })
        for j, sub in enumerate(cat.sub_categories):
            tint = shade(base, 0.2 + 0.1 * j)
            sub_node = f"sub-{cat.id}-{sub.id}"
            graph.nodes.append({"id": sub_node, "name": _name(sub.label), "color": tint})
            graph.links.append({
                "from": cat_node, "to": sub_node,
                "weight": float(sub.amount), "color": tint, "name": _name(sub.label),
            })

    return graph


def _rgba(color: str, alpha: float) -> str:
    parts = re.findall(r"[a-fA-F\d]{2}", color)[:3]
    r, g, b = (int(p, 16) for p in parts)
    return f"rgba({r},{g},{b},{alpha})"


def make_sankey_figure(graph: FlowGraph, title: str = "Personal Finance Flow") -> go.Figure:
    index = graph.node_index()
    fig = go.Figure(data=[go.Sankey(
        node=dict(
            pad=30,
            thickness=15,
            line=dict(color="black", width=0.5),
            label=[n["name"] for n in graph.nodes],
            color=[n["color"] for n in graph.nodes],
            hovertemplate=f"%{{label}}: {CURRENCY}%{{value:,.0f}}<extra></extra>"
        ),
        link=dict(
            source=[index[l["from"]] for l in graph.links],
            target=[index[l["to"]] for l in graph.links],
            value=[l["weight"] for l in graph.links],
            color=[_rgba(l["color"], 0.5) for l in graph.links],
            hovertemplate=(
                "%{source.label} → %{target.label}<br>"
                f"Amount: {CURRENCY}%{{value:,.0f}}<extra></extra>"
            )
        )
    )])
    fig.update_layout(title=title, margin=dict(l=10, r=10, t=40, b=10))
    return fig
