"""
Console rendering of search responses.

Functions return strings; the CLI decides where they go.
"""

import json
from typing import Any, Dict, List

from hybridkg.retrieval.models import OrderedResult, SearchResponse

SEPARATOR = "=" * 70
DIVIDER = "-" * 70


def section(title: str) -> str:
    return f"\n{SEPARATOR}\n{title}\n{SEPARATOR}"


def format_time(seconds: float) -> str:
    return f"⏱️  Time: {seconds:.2f}s"


def expertise_badge(level: Any) -> str:
    if level == "Expert":
        return " ⭐ EXPERT"
    if level == "Senior":
        return " 🔹 Senior"
    return ""


def _title(result: OrderedResult) -> str:
    fields = result.display_fields
    name = fields.get("name") or result.entity_id
    role = fields.get("role")
    title = f"{name} - {role}" if role else name
    return title + expertise_badge(fields.get("expertise_level"))


def _experience(result: OrderedResult) -> str:
    years = result.display_fields.get("years_of_experience")
    return f"Experience: {years} years" if years is not None else f"Kind: {result.kind or 'node'}"


def format_direct(position: int, result: OrderedResult) -> List[str]:
    lines = [
        f"\n{position}. {_title(result)}",
        f"   {_experience(result)} | Match Score: {result.score:.4f}",
    ]
    if result.ranks:
        ranks = ", ".join(f"{name} #{rank}" for name, rank in sorted(result.ranks.items()))
        lines.append(f"   Found by: {ranks}")
    if result.display_fields.get("text"):
        lines.append(f"   {result.display_fields['text']}")
    return lines


def format_expansion(position: int, result: OrderedResult, names: Dict[str, str]) -> List[str]:
    via = names.get(result.via_entity_id, result.via_entity_id)
    lines = [
        f"\n{position}. {_title(result)}",
        f"   {_experience(result)} | Via: {result.via_relationship_type} {via} ({result.direction})",
    ]
    project = result.edge_attributes.get("project") or result.edge_attributes.get("role")
    if project:
        lines.append(f'   Project: "{project}"')
    if len(result.connections) > 1:
        lines.append(f"   Connections: {len(result.connections)}")
    if result.display_fields.get("text"):
        lines.append(f"   {result.display_fields['text']}")
    return lines


def render_response(response: SearchResponse) -> str:
    """Human-readable report: direct matches, then connected nodes, then timing."""
    direct = response.direct
    expansion = response.expansion
    names = {r.entity_id: r.display_fields.get("name", r.entity_id) for r in direct}

    lines = [section("📋 RESULTS")]
    if response.degraded_stages:
        lines.append(f"\n⚠️  Degraded search: {', '.join(response.degraded_stages)} unavailable")

    if not response.results:
        lines.append("\nNo results.")
    else:
        lines.append(f"\n🎯 Direct Matches ({len(direct)}):")
        for i, result in enumerate(direct, start=1):
            lines.extend(format_direct(i, result))

        if expansion:
            lines.append(f"\n\n🔗 Connected ({len(expansion)}):")
            for i, result in enumerate(expansion, start=1):
                lines.extend(format_expansion(i, result, names))

    lines.append("")
    lines.append(format_time(response.timings.get("total", 0.0)))
    lines.append(SEPARATOR)
    return "\n".join(lines)


def render_json(response: SearchResponse) -> str:
    return json.dumps(response.to_dict(), indent=2, ensure_ascii=False)
