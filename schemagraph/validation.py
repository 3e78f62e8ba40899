"""
Graph validation - Report structural issues in a schema graph.

Nothing here is fatal: issues are surfaced to the user next to the diagram.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import GraphModel


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a schema graph."""
    severity: IssueSeverity
    message: str
    type_name: str | None = None
    field: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.type_name:
            result["type_name"] = self.type_name
        if self.field:
            result["field"] = self.field
        return result


def validate_graph(graph: "GraphModel") -> list[ValidationIssue]:
    """
    Validate a schema graph and return a list of issues.

    Checks for:
    - Fields referring to undeclared types - WARNING
    - Union members that are not declared - WARNING
    - Types with no relationships - INFO
    - Self-referencing fields - INFO
    - Empty schema - INFO

    Args:
        graph: The graph to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not graph.nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Schema has no types to display"
        ))
        return issues

    for ref in graph.unresolved:
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Field {ref.type_name}.{ref.field} refers to undeclared type {ref.target}",
            type_name=ref.type_name,
            field=ref.field
        ))

    for node in graph.nodes.values():
        for member in node.possible_types or []:
            if member not in graph.nodes:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"Union {node.name} lists undeclared member {member}",
                    type_name=node.name
                ))

    connected: set[str] = set()
    for source, target in graph.links():
        connected.add(source)
        connected.add(target)

    orphans = [n.name for n in graph.nodes.values() if n.id not in connected]
    if orphans:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message=f"Types without relationships: {', '.join(orphans)}"
        ))

    for edge in graph.edges:
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.INFO,
                message=f"Self-referencing field {edge.source}.{edge.label}",
                type_name=edge.source,
                field=edge.label
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": len([i for i in issues if i.severity == IssueSeverity.ERROR]) == 0
    }
