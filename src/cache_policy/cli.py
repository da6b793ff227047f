"""Command-line interface for cache-policy."""

import json

import click

from .common.exceptions import ConfigurationError
from .common.logging import DEFAULT_LOG_LEVEL, LOG_LEVELS, get_logger, setup_logging
from .compiler import compile_configuration
from .renderers.cloudfront import cloudfront
from .renderers.varnish import render_vcl
from .resolution import resolve

logger = get_logger(__name__)


def _load(config_file):
    logger.debug("Loading configuration", file=config_file.name)
    try:
        raw = json.load(config_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{config_file.name}: invalid JSON: {e}") from e
    try:
        return compile_configuration(raw)
    except ConfigurationError as e:
        for error in e.errors:
            click.echo(f"error: {error}", err=True)
        raise click.ClickException(
            f"{config_file.name}: {len(e.errors)} configuration error(s)"
        ) from e


@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    default=False,
    help="Enable debug logging"
)
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    envvar="CACHE_POLICY_JSON_LOGS",
    help="Emit logs as JSON (env: CACHE_POLICY_JSON_LOGS)"
)
@click.option(
    "--log-level",
    default=DEFAULT_LOG_LEVEL,
    envvar="CACHE_POLICY_LOG_LEVEL",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help=f"Log level (env: CACHE_POLICY_LOG_LEVEL, default: {DEFAULT_LOG_LEVEL})"
)
@click.version_option(package_name="cache-policy")
def main(verbose, json_logs, log_level):
    """
    cache-policy - one cache configuration, three enforcement points.

    Compiles a JSON cache-policy configuration and renders it as CloudFront
    distribution configs or Varnish VCL.

    \b
    Examples:
        # Validate a configuration
        cache-policy check backends.json

        # Show which policy governs a request
        cache-policy resolve backends.json --host www.example.com --path /assets/app.js

        # Render artifacts
        cache-policy render cloudfront backends.json > distributions.json
        cache-policy render varnish backends.json > default.vcl
    """
    setup_logging(level="DEBUG" if verbose else log_level, json_format=json_logs)


@main.command()
@click.argument("config_file", type=click.File("r"))
def check(config_file):
    """Validate CONFIG_FILE and report every error."""
    configuration = _load(config_file)
    click.echo(
        f"OK: {len(configuration)} backend(s), primary '{configuration.primary.id}'"
    )


@main.command("resolve")
@click.argument("config_file", type=click.File("r"))
@click.option("--host", required=True, help="Request Host header")
@click.option("--path", "path", required=True, help="Request path, with optional query")
def resolve_command(config_file, host, path):
    """Print the policy governing a request."""
    configuration = _load(config_file)
    resolved = resolve(configuration, host, path)
    policy = resolved.policy
    result = {
        "backend": resolved.backend_id,
        "host": resolved.effective_host(host),
        "proxied_from": resolved.proxied_from,
        "patterns": [str(p) for p in resolved.behavior.patterns]
        if resolved.behavior.patterns is not None
        else None,
        "headers": list(policy.headers.allowed),
        "cookies": policy.cookies.mode.value,
        "cookie_names": list(policy.cookies.names),
        "vary": list(policy.vary),
    }
    click.echo(json.dumps(result, indent=2))


@main.group()
def render():
    """Render enforcement-point artifacts."""


@render.command("cloudfront")
@click.argument("config_file", type=click.File("r"))
def render_cloudfront(config_file):
    """Render CloudFront DistributionConfigs as JSON."""
    configuration = _load(config_file)
    click.echo(json.dumps(cloudfront(configuration), indent=2))


@render.command("varnish")
@click.argument("config_file", type=click.File("r"))
def render_varnish(config_file):
    """Render a Varnish VCL program."""
    configuration = _load(config_file)
    click.echo(render_vcl(configuration), nl=False)


if __name__ == "__main__":
    main()
