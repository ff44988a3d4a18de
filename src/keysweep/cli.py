"""keysweep CLI - count or delete Redis keys by glob pattern.

    keysweep count 'user:info:136*' -c -n 127.0.0.1:7001,127.0.0.1:7002 -a secret
    keysweep del 'session:*' -n 127.0.0.1:6379 -d 2
"""

import asyncio
from typing import Annotated, Optional

import sentry_sdk
import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from keysweep import __version__
from keysweep.application.engine import Engine
from keysweep.common.config.settings import Settings
from keysweep.common.exceptions.base_exception import CUSTOM_EXCEPTIONS
from keysweep.common.logging.logger import configure_logging, log_error, log_info
from keysweep.domain.keyspace.services.result_aggregator import ResultAggregator

app = typer.Typer(
    help="keysweep - count or delete Redis keys matching a pattern, on a single instance or a cluster.",
    no_args_is_help=True,
)

ClusterOpt = Annotated[Optional[bool], typer.Option("--cluster/--single", "-c", help="Cluster mode.")]
NodesOpt = Annotated[Optional[str], typer.Option("--nodes", "-n", help="Comma-separated host:port list.")]
PasswordOpt = Annotated[Optional[str], typer.Option("--password", "-a", help="Redis password.")]
DatabaseOpt = Annotated[Optional[int], typer.Option("--database", "-d", help="Database index (single mode only).")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"keysweep {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version."),
    ] = None,
) -> None:
    """Count or delete Redis keys by pattern."""


@app.command("count")
def count_command(
    pattern: Annotated[str, typer.Argument(help="Glob pattern; empty counts every key.")] = "",
    cluster: ClusterOpt = None,
    nodes: NodesOpt = None,
    password: PasswordOpt = None,
    database: DatabaseOpt = None,
) -> None:
    """Count keys matching PATTERN on every master."""
    config = _load_settings(cluster, nodes, password, database)
    _run(config, "count", pattern)


@app.command("del")
def delete_command(
    pattern: Annotated[str, typer.Argument(help="Glob pattern of the keys to delete.")],
    cluster: ClusterOpt = None,
    nodes: NodesOpt = None,
    password: PasswordOpt = None,
    database: DatabaseOpt = None,
) -> None:
    """Delete keys matching PATTERN on every master."""
    config = _load_settings(cluster, nodes, password, database)
    if not pattern.strip():
        log_error("Key pattern must not be empty for del")
        raise typer.Exit(1)
    _run(config, "clear", pattern)


def _load_settings(cluster, nodes, password, database) -> Settings:
    load_dotenv()
    try:
        config = Settings().with_overrides(
            REDIS_CLUSTER=cluster,
            REDIS_NODES=nodes,
            REDIS_PASSWORD=password,
            REDIS_DB=database,
        )
    except ValidationError as e:
        log_error("Invalid configuration", extra={"errors": [err["msg"] for err in e.errors()]})
        raise typer.Exit(1)

    configure_logging(config)
    if config.SENTRY_DSN:
        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            traces_sample_rate=config.SENTRY_TRACES_SAMPLE_RATE,
            environment=config.ENVIRONMENT,
        )
    return config


def _run(config: Settings, operation: str, pattern: str) -> None:
    try:
        report = asyncio.run(_execute(config, operation, pattern))
    except CUSTOM_EXCEPTIONS as e:
        log_error("Client creation failed", extra={"error": e.detail})
        raise typer.Exit(1)
    output(report)


async def _execute(config: Settings, operation: str, pattern: str) -> Optional[ResultAggregator]:
    engine = await Engine.connect(config)
    try:
        if operation == "clear":
            return await engine.clear_report(pattern)
        return await engine.count_report(pattern)
    finally:
        await engine.close()


def output(report: Optional[ResultAggregator]) -> None:
    if report is None:
        return
    label = "deleted" if report.operation == "clear" else "matched"
    log_info("********** Summary **********")
    for result in report.results:
        extra = {"status": result.status.value}
        if result.error:
            extra["error"] = result.error
        log_info(f"Node [{result.shard}] {label}: {report.as_mapping()[result.shard]}", extra=extra)
    log_info(f"All nodes {label}: {report.total()}")
    log_info("*****************************")


if __name__ == "__main__":
    app()
