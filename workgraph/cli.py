from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any, Optional

import typer

from workgraph.core.errors import GraphError, ScopeLoadError, ScopeValidationError
from workgraph.core.graph.edge_policy import EdgePolicy, PolicyConfigError, load_policy
from workgraph.core.graph.engine import GraphView, build_graph_view
from workgraph.core.graph.validator import (
    check_dependency_endpoints,
    check_move,
    check_new_dependency,
)
from workgraph.core.io.load_scope import load_scope
from workgraph.core.lint.lint_scope import lint_scope
from workgraph.core.model import DependencyEdge, WorkScope
from workgraph.core.validate.validate_scope import summarize_scope, validate_scope

app = typer.Typer(add_completion=False, no_args_is_help=True)

POLICY_OPTION = typer.Option(
    None,
    "--policy-file",
    envvar="WORKGRAPH_POLICY_FILE",
    help="Optional YAML file listing informational (non weight-bearing) edge kinds",
)
FORMAT_OPTION = typer.Option("text", "--format", help="Output format: text|json")


@app.callback()
def _callback(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level for stderr diagnostics"),
) -> None:
    """Work-item dependency graph CLI."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _to_item(e: GraphError) -> dict[str, Any]:
    source = "load" if isinstance(e, ScopeLoadError) else "lint" if e.code.startswith("L_") else "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": e.severity,
        "source": source,
    }


def _emit_json(command: str, ok: bool, *, exit_code: int, errors: list[GraphError], **extra: Any) -> None:
    payload: dict[str, Any] = {
        "tool": "workgraph",
        "command": command,
        "ok": ok,
        "error_count": sum(1 for e in errors if e.severity == "error"),
        "errors": [_to_item(e) for e in errors],
    }
    payload.update(extra)
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))
    raise typer.Exit(code=exit_code)


def _check_format(command: str, format: str) -> None:
    if format not in ("text", "json"):
        err = ScopeValidationError(
            code=f"E_{command.upper().replace('-', '_')}_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _load_policy_or_exit(command: str, policy_file: Optional[str], format: str) -> EdgePolicy:
    try:
        return load_policy(policy_file)
    except FileNotFoundError:
        errors: list[GraphError] = [
            ScopeLoadError(
                code="E_POLICY_FILE_NOT_FOUND",
                message=f"policy file not found: {policy_file}",
                file=None,
                path="policy_file",
            )
        ]
        exit_code = 1
    except PolicyConfigError as e:
        errors = [
            ScopeValidationError(
                code="E_POLICY_FILE_INVALID",
                message=str(e),
                file=policy_file,
                path="policy_file",
            )
        ]
        exit_code = 2
    if format == "json":
        _emit_json(command, False, exit_code=exit_code, errors=errors)
    _print_errors(errors)
    raise typer.Exit(code=exit_code)


def _load_valid_scope_or_exit(command: str, path: str, format: str) -> tuple[WorkScope, list[GraphError]]:
    try:
        raw = load_scope(path)
    except ScopeLoadError as e:
        if format == "json":
            _emit_json(command, False, exit_code=1, errors=[e])
        _print_errors([e])
        raise typer.Exit(code=1)

    scope, errors, warnings = validate_scope(raw)
    if errors or scope is None:
        if format == "json":
            _emit_json(command, False, exit_code=2, errors=[*errors, *warnings])
        _print_errors([*errors, *warnings])
        raise typer.Exit(code=2)
    return scope, list(warnings)


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a scope file (.yaml/.yml/.json)"),
    format: str = FORMAT_OPTION,
) -> None:
    """Validate a work-item scope file. Dangling edges are reported as warnings."""
    _check_format("validate", format)
    scope, warnings = _load_valid_scope_or_exit("validate", path, format)

    if format == "json":
        counts = Counter([n.kind for n in scope.nodes])
        summary = {
            "node_count": len(scope.nodes),
            "edge_count": len(scope.edges),
            "kind_counts": {k: int(v) for k, v in counts.items()},
            "dangling_edge_ids": [w.edge_id for w in warnings],
        }
        _emit_json("validate", True, exit_code=0, errors=warnings, schema_version=scope.schema_version, summary=summary)

    _print_errors(warnings)
    typer.echo(summarize_scope(scope))


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a scope file (.yaml/.yml/.json)"),
    format: str = FORMAT_OPTION,
    policy_file: Optional[str] = POLICY_OPTION,
) -> None:
    """Lint a scope file (rules beyond shape validation)."""
    _check_format("lint", format)
    policy = _load_policy_or_exit("lint", policy_file, format)

    try:
        raw = load_scope(path)
    except ScopeLoadError as e:
        if format == "json":
            _emit_json("lint", False, exit_code=1, errors=[e])
        _print_errors([e])
        raise typer.Exit(code=1)

    lint_errors = lint_scope(raw, policy=policy)
    _, validation_errors, _ = validate_scope(raw)
    findings: list[GraphError] = [*lint_errors, *validation_errors]
    failed = any(e.severity == "error" for e in findings)

    if format == "json":
        _emit_json("lint", not failed, exit_code=2 if failed else 0, errors=findings)

    _print_errors(findings)
    if failed:
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("graph")
def graph(
    path: str = typer.Argument(..., help="Path to a scope file (.yaml/.yml/.json)"),
    format: str = FORMAT_OPTION,
    policy_file: Optional[str] = POLICY_OPTION,
) -> None:
    """Compute layout levels and the critical path for a scope."""
    _check_format("graph", format)
    policy = _load_policy_or_exit("graph", policy_file, format)
    scope, _ = _load_valid_scope_or_exit("graph", path, format)

    view = build_graph_view(scope, policy=policy)
    exit_code = 0 if view.ok else 3

    if format == "json":
        problems: list[GraphError] = [*view.dangling]
        if view.error is not None:
            problems.append(view.error)
        _emit_json("graph", view.ok, exit_code=exit_code, errors=problems, graph=view.to_dict())

    _print_errors(list(view.dangling))
    if view.error is not None:
        _print_errors([view.error])
        raise typer.Exit(code=exit_code)
    typer.echo(_render_view(view))


@app.command("check-dependency")
def check_dependency(
    path: str = typer.Argument(..., help="Path to a scope file (.yaml/.yml/.json)"),
    from_id: str = typer.Argument(..., help="The dependent work item"),
    to_id: str = typer.Argument(..., help="The work item it would depend on"),
    kind: str = typer.Option("depends_on", "--kind", help="Dependency kind"),
    format: str = FORMAT_OPTION,
    policy_file: Optional[str] = POLICY_OPTION,
) -> None:
    """Check whether a new dependency edge may be added to a scope."""
    _check_format("check-dependency", format)
    policy = _load_policy_or_exit("check-dependency", policy_file, format)
    scope, _ = _load_valid_scope_or_exit("check-dependency", path, format)

    candidate = DependencyEdge(id="<candidate>", from_id=from_id, to_id=to_id, kind=kind)
    errors = check_dependency_endpoints(candidate, scope.nodes)
    if not errors:
        errors = check_new_dependency(scope.edges, candidate, policy=policy)
    _report_check("check-dependency", errors, format, ok_message=f"OK: {from_id} may depend on {to_id}")


@app.command("check-move")
def check_move_cmd(
    path: str = typer.Argument(..., help="Path to a scope file (.yaml/.yml/.json)"),
    item_id: str = typer.Argument(..., help="The work item being moved"),
    parent_id: Optional[str] = typer.Argument(None, help="New parent id (omit to move to top level)"),
    format: str = FORMAT_OPTION,
) -> None:
    """Check whether a work item may be moved under a new parent."""
    _check_format("check-move", format)
    scope, _ = _load_valid_scope_or_exit("check-move", path, format)

    errors = check_move(item_id, parent_id, scope.nodes)
    _report_check("check-move", errors, format, ok_message=f"OK: {item_id} may move under {parent_id or '<top>'}")


def _report_check(command: str, errors: list[GraphError], format: str, *, ok_message: str) -> None:
    if format == "json":
        _emit_json(command, not errors, exit_code=2 if errors else 0, errors=errors)
    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo(ok_message)


def _render_view(view: GraphView) -> str:
    lines = ["Levels:"]
    for ln in view.nodes:
        est = "-" if ln.node.estimate_minutes is None else f"{ln.node.estimate_minutes}m"
        lines.append(f"  {ln.level}  {ln.node.id}  ({ln.node.kind}, {est})")

    path = view.critical_path
    lines.append(f"Critical path ({path.total_minutes} min): " + (" -> ".join(path.node_ids) or "<empty>"))
    if path.unestimated_ids:
        lines.append("Unestimated on path: " + ", ".join(path.unestimated_ids))
    return "\n".join(lines)


def _print_errors(errors: list[GraphError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="workgraph")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
