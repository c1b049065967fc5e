"""Render a snapshot as Graphviz DOT or a single-file HTML report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .models import ArchitectureSnapshot, DependencyEdge, ModuleNode


def export_dot(snapshot: ArchitectureSnapshot, output_file: Path, focus: str = "") -> None:
    node_ids, edges = _focused_subgraph(snapshot, focus)

    out = [
        "digraph Architecture {",
        "  rankdir=LR;",
        '  node [shape=box, style="rounded,filled", fontname="Helvetica"];',
    ]
    for node_id in node_ids:
        node = snapshot.nodes[node_id]
        label = _dot_quote(f"{node.name}\\n{node.kind.display_name}\\n{node.path}")
        out.append(f'  "{node_id}" [label="{label}", fillcolor="{node.kind.color}"];')

    for edge in edges:
        attrs = [f'label="{edge.relationship.value}"']
        if edge.is_circular:
            attrs += ['color="red"', 'style="dashed"']
        out.append(f'  "{edge.source}" -> "{edge.target}" [{", ".join(attrs)}];')

    out.append("}")
    output_file.write_text("\n".join(out) + "\n", encoding="utf-8")


def export_html(snapshot: ArchitectureSnapshot, output_file: Path, focus: str = "") -> None:
    """Write a self-contained HTML report: module table, dependency table, metrics."""
    node_ids, edges = _focused_subgraph(snapshot, focus)
    payload = {
        "nodes": [_node_row(snapshot.nodes[node_id]) for node_id in node_ids],
        "edges": [_edge_row(snapshot, edge) for edge in edges],
        "cycles": len(snapshot.circular_dependencies),
        "metrics": snapshot.metrics.to_dict(),
    }
    output_file.write_text(_render_report(payload), encoding="utf-8")


def _node_row(node: ModuleNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "label": f"{node.kind.icon} {node.name}",
        "kind": node.kind.display_name,
        "title": node.path,
        "color": node.kind.color,
        "loc": node.metrics.lines_of_code,
        "complexity": round(node.metrics.complexity_score, 2),
    }


def _edge_row(snapshot: ArchitectureSnapshot, edge: DependencyEdge) -> Dict[str, Any]:
    return {
        "src": snapshot.nodes[edge.source].name,
        "dst": snapshot.nodes[edge.target].name,
        "relationship": edge.relationship.value,
        "circular": edge.is_circular,
    }


def _render_report(payload: Dict[str, Any]) -> str:
    # Keep "</" out of the inline script.
    data = json.dumps(payload).replace("</", "<\\/")
    return f"""<!doctype html>
<html lang="en">
<meta charset="utf-8">
<title>Architecture Report</title>
<style>
  body {{ font: 14px/1.4 system-ui, sans-serif; margin: 24px; color: #2c3e50; }}
  table {{ border-collapse: collapse; margin-bottom: 24px; }}
  th, td {{ padding: 4px 10px; border-bottom: 1px solid #ecf0f1; text-align: left; }}
  td.num {{ text-align: right; }}
  .kind {{ display: inline-block; width: 8px; height: 8px; margin-right: 6px; border-radius: 50%; }}
  tr.cycle td {{ color: #c0392b; font-weight: 600; }}
  dl {{ display: grid; grid-template-columns: max-content auto; gap: 2px 16px; }}
</style>
<body>
<h1>Architecture Report</h1>
<p id="summary"></p>
<h2>Modules</h2>
<table id="modules"><tr><th>Module</th><th>Kind</th><th>Path</th><th>LOC</th><th>Complexity</th></tr></table>
<h2>Dependencies</h2>
<table id="dependencies"><tr><th>From</th><th>Relationship</th><th>To</th></tr></table>
<h2>Metrics</h2>
<dl id="metrics"></dl>
<script>
    const graph = {data};
    const cell = (row, text, cls) => {{
      const td = row.insertCell();
      td.textContent = text;
      if (cls) td.className = cls;
      return td;
    }};
    document.getElementById('summary').textContent =
      `${{graph.nodes.length}} modules, ${{graph.edges.length}} dependencies, ${{graph.cycles}} cycles`;
    const modules = document.getElementById('modules');
    for (const n of graph.nodes) {{
      const row = modules.insertRow();
      const name = cell(row, n.label);
      const dot = document.createElement('span');
      dot.className = 'kind';
      dot.style.background = n.color;
      name.prepend(dot);
      cell(row, n.kind);
      cell(row, n.title);
      cell(row, n.loc, 'num');
      cell(row, n.complexity, 'num');
    }}
    const deps = document.getElementById('dependencies');
    for (const e of graph.edges) {{
      const row = deps.insertRow();
      if (e.circular) row.className = 'cycle';
      cell(row, e.src);
      cell(row, e.relationship);
      cell(row, e.dst);
    }}
    const metrics = document.getElementById('metrics');
    for (const [key, value] of Object.entries(graph.metrics)) {{
      const dt = document.createElement('dt');
      const dd = document.createElement('dd');
      dt.textContent = key.replaceAll('_', ' ');
      dd.textContent = typeof value === 'number' ? +value.toFixed(3) : value;
      metrics.append(dt, dd);
    }}
</script>
</body>
</html>
"""


def _focused_subgraph(snapshot: ArchitectureSnapshot, focus: str) -> Tuple[List[str], List[DependencyEdge]]:
    """Node ids and edges to draw.

    With a focus string, keep the nodes whose id, name or path contains it,
    their direct neighbours and the edges touching them. A focus that matches
    nothing selects the whole graph.
    """
    all_edges = list(snapshot.edges)
    matched = {
        node_id
        for node_id, node in snapshot.nodes.items()
        if focus and (focus in node_id or focus in node.name or focus in node.path)
    }
    if not matched:
        return list(snapshot.nodes), all_edges

    edges = [e for e in all_edges if e.source in matched or e.target in matched]
    keep = matched.union(e.source for e in edges).union(e.target for e in edges)
    return sorted(keep), edges


def _dot_quote(text: str) -> str:
    return text.replace('"', '\\"')
