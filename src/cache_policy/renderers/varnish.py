"""Varnish VCL generation from the language-neutral decision tree.

This module only translates structure into syntax. Which branch governs a
request, and what it does to headers, cookies and Vary, is decided by
:func:`cache_policy.decision_tree.render_decision_tree` and the
:class:`~cache_policy.policy.cache_policy.CachePolicy` of each leaf.

``vcl_recv`` walks the host/path tree once and tags the request with the
id of the governing policy; ``vcl_backend_response`` dispatches on that tag
so a rewritten Host header cannot select a different branch.
"""

import re
from collections.abc import Callable, Sequence

from ..behaviors import Backend, Configuration, split_origin
from ..common.logging import get_logger
from ..decision_tree import (
    AllOf,
    AnyOf,
    Condition,
    DecisionTree,
    HostEquals,
    PathMatches,
    render_decision_tree,
)
from ..policy.cache_policy import CachePolicy, CookieMode, HeaderAction
from ..policy.tables import ALLOWED_METHODS, CACHED_METHODS
from ..resolution import ResolvedPolicy

logger = get_logger(__name__)

POLICY_HEADER = "X-Cache-Policy"
INDENT = "  "

# Host header without port, lowercased, to match resolve_backend.
_HOST_EXPR = 'std.tolower(regsub({req}.http.host, ":[0-9]+$", ""))'


def vcl_identifier(backend_id: str) -> str:
    return "backend_" + re.sub(r"[^A-Za-z0-9_]", "_", backend_id)


def vcl_identifiers(configuration: Configuration) -> dict[str, str]:
    """Map each backend id to a distinct VCL identifier, in declared order.

    Ids that sanitize to the same name ('a-b', 'a_b') get a numeric suffix.
    """
    identifiers: dict[str, str] = {}
    taken: set[str] = set()
    for backend in configuration:
        base = name = vcl_identifier(backend.id)
        suffix = 1
        while name in taken:
            suffix += 1
            name = f"{base}_{suffix}"
        taken.add(name)
        identifiers[backend.id] = name
    return identifiers


def vcl_string(value: str) -> str:
    """Quote a VCL string; long-string form when it contains quotes."""
    if '"' in value:
        return '{"' + value + '"}'
    return f'"{value}"'


def vcl_condition(condition: Condition, req: str = "req") -> str:
    """Translate a tree condition into a VCL boolean expression."""
    if isinstance(condition, HostEquals):
        return f"{_HOST_EXPR.format(req=req)} == {vcl_string(condition.host)}"
    if isinstance(condition, PathMatches):
        return f"{req}.url ~ {vcl_string(condition.matcher.expression)}"
    if isinstance(condition, AnyOf):
        return " ||\n".join(f"({vcl_condition(c, req)})" for c in condition.conditions)
    if isinstance(condition, AllOf):
        return " &&\n".join(f"({vcl_condition(c, req)})" for c in condition.conditions)
    return "true" if condition.evaluate("", "") else "false"


def indent(text: str, prefix: str = INDENT) -> str:
    return "\n".join(prefix + line if line else line for line in text.splitlines())


def if_else(branches: Sequence[tuple[str | None, str]]) -> str:
    """Emit ``if / elseif / else`` from (condition text, body) pairs."""
    if len(branches) == 1 and branches[0][0] is None:
        return branches[0][1]
    out = []
    for i, (condition, body) in enumerate(branches):
        if condition is None:
            head = "} else {"
        elif i == 0:
            head = f"if ({condition}) {{"
        else:
            head = f"}} elseif ({condition}) {{"
        out.append(head)
        out.append(indent(body))
    if out:
        out.append("}")
    return "\n".join(out)


def emit_tree(tree: DecisionTree, body: Callable[[object], str], req: str = "req") -> str:
    return if_else(
        [
            (None if b.condition is None else vcl_condition(b.condition, req), body(b.payload))
            for b in tree
        ]
    )


def set_vary(header: str, resp: str = "beresp") -> str:
    """Create or extend the Vary header with one entry."""
    sep = r"(\s|,|^|$)"
    return "\n".join(
        [
            f"if (!{resp}.http.Vary) {{",
            f'{INDENT}set {resp}.http.Vary = "{header}";',
            f'}} elseif ({resp}.http.Vary !~ "{sep}{header}{sep}") {{',
            f'{INDENT}set {resp}.http.Vary = {resp}.http.Vary + ", {header}";',
            "}",
        ]
    )


def filter_cookies(policy: CachePolicy) -> str:
    cookies = policy.cookies
    if cookies.mode is CookieMode.ALL:
        return "# Allow all request cookies."
    if cookies.mode is CookieMode.NONE:
        return "unset req.http.cookie;"
    lines = [f"unset req.http.{carrier};" for _, carrier in cookies.carriers]
    for name, carrier in cookies.carriers:
        lines.append(f'if (cookie.isset("{name}")) {{')
        lines.append(f'{INDENT}set req.http.{carrier} = cookie.get("{name}");')
        lines.append("}")
    lines.append(f'cookie.keep("{",".join(cookies.names)}");')
    lines.append("set req.http.cookie = cookie.get_string();")
    lines.append('if (req.http.cookie == "") {')
    lines.append(f"{INDENT}unset req.http.cookie;")
    lines.append("}")
    return "\n".join(lines)


def filter_headers(policy: CachePolicy) -> str:
    lines = []
    for rule in policy.headers.rules:
        if rule.action is HeaderAction.DELETE:
            lines.append(f"unset req.http.{rule.name};")
        else:
            lines.append(f"set req.http.{rule.name} = {vcl_string(rule.value or '')};")
    return "\n".join(lines)


def process_request(
    resolved: ResolvedPolicy, policy_id: int, backend_name: str
) -> str:
    lines = [
        f'set req.http.{POLICY_HEADER} = "{policy_id}";',
        f"set req.backend_hint = {backend_name};",
    ]
    if resolved.host_override:
        lines.append(f"set req.http.host = {vcl_string(resolved.host_override)};")
    lines.append(filter_cookies(resolved.policy))
    header_lines = filter_headers(resolved.policy)
    if header_lines:
        lines.append(header_lines)
    return "\n".join(lines)


def process_response(resolved: ResolvedPolicy) -> str:
    lines = [set_vary(header) for header in resolved.policy.vary]
    if resolved.policy.cookies.strips_set_cookie:
        lines.append("unset beresp.http.set-cookie;")
    else:
        lines.append("# Allow set-cookie responses.")
    return "\n".join(lines)


def backend_declaration(backend: Backend, name: str) -> str:
    parts = split_origin(backend.origin)
    port = parts.port or (443 if parts.scheme == "https" else 80)
    return "\n".join(
        [
            f"backend {name} {{",
            f'{INDENT}.host = "{parts.hostname or backend.origin}";',
            f'{INDENT}.port = "{port}";',
            "}",
        ]
    )


def _method_regex(methods: Sequence[str]) -> str:
    return "^(" + "|".join(methods) + ")$"


def render_vcl(configuration: Configuration) -> str:
    """Render a complete VCL program for a configuration.

    Args:
        configuration: Compiled configuration

    Returns:
        VCL source text
    """
    tree = render_decision_tree(configuration)
    names = vcl_identifiers(configuration)

    policy_ids: dict[ResolvedPolicy, int] = {}
    for host_branch in tree:
        for path_branch in host_branch.payload:
            policy_ids.setdefault(path_branch.payload, len(policy_ids) + 1)

    def request_body(resolved: ResolvedPolicy) -> str:
        return process_request(resolved, policy_ids[resolved], names[resolved.backend_id])

    recv_body = emit_tree(tree, lambda inner: emit_tree(inner, request_body))
    response_body = if_else(
        [
            (
                f'bereq.http.{POLICY_HEADER} == "{policy_id}"',
                process_response(resolved),
            )
            for resolved, policy_id in policy_ids.items()
        ]
    )

    sections = [
        "vcl 4.1;",
        "",
        "import cookie;",
        "import std;",
        "",
        "\n\n".join(backend_declaration(b, names[b.id]) for b in configuration),
        "",
        "sub vcl_recv {",
        indent(f'if (req.method !~ "{_method_regex(ALLOWED_METHODS)}") {{'),
        indent(indent('return (synth(403, "Unsupported method."));')),
        indent("}"),
        indent("cookie.parse(req.http.cookie);"),
        indent(recv_body),
        indent(f'if (req.method !~ "{_method_regex(CACHED_METHODS)}") {{'),
        indent(indent("return (pass);")),
        indent("}"),
        indent("return (hash);"),
        "}",
        "",
        "sub vcl_backend_response {",
        indent(response_body),
        "}",
        "",
    ]
    vcl = "\n".join(sections)
    logger.debug("VCL rendered", policies=len(policy_ids), lines=vcl.count("\n"))
    return vcl
