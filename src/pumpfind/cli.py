import json, asyncio, logging, time
import click
import httpx
from rich.console import Console
from rich.logging import RichHandler

from .adapters.console_reporter import RichReporter
from .adapters.rpc_httpx import HttpxSolanaRPC, RPCError
from .application.use_cases import scan_account
from .config import ConfigError, DEFAULT_CONFIG_PATH, load_settings
from .domain.decoding import DecodeError, decode_mint, process_mint_logs
from .domain.value_types import Signature

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def cli(log_level):
    """pumpfind — scan an account's history for pump.fun token creations."""
    _setup_logging(log_level)


@cli.command("scan")
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True,
              help="JSON config file (missing file = defaults)")
@click.option("--rpc", "rpc_url", envvar="PUMPFIND_RPC_URL", help="Solana RPC endpoint URL")
@click.option("--account", help="Account whose signature history is scanned")
@click.option("--before", "start_before", help="Start paging strictly before this signature")
@click.option("--total", type=int, help="Signatures to collect")
@click.option("--page-size", type=int, help="Signatures per getSignaturesForAddress request")
@click.option("--batch-size", type=int, help="Signatures per output batch")
@click.option("--concurrency", type=int, help="Max in-flight getTransaction requests")
@click.option("--out-dir", "output_dir", help="Directory for batch files")
@click.option("--format", "output_format", type=click.Choice(["json", "parquet"]), help="Batch file format")
@click.option("--suffix", "match_suffix", help="Token address suffix to look for")
@click.option("--manifest", help="Optional JSONL manifest path (one record per batch)")
def scan_cmd(config_path, **overrides):
    """Collect signatures, decode create events batch by batch, report the oldest match."""
    try:
        settings = load_settings(config_path).merged(**overrides)
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint="config")

    console.print(f"📡 Fetching {settings.total} signatures for [bold]{settings.account}[/] via {settings.rpc_url}")
    t0 = time.time()
    try:
        with RichReporter(console, match_suffix=settings.match_suffix) as reporter:
            agg = asyncio.run(scan_account(settings, reporter))
    except (RPCError, httpx.HTTPError, OSError) as e:
        raise click.ClickException(f"{type(e).__name__}: {e}")

    console.print(
        f"[bold]done[/]: {agg.batches} batches • {time.time() - t0:.2f}s • files in {settings.output_dir}"
    )


@cli.command("decode")
@click.argument("payload", required=False)
@click.option("--signature", help="Fetch this transaction and decode its create event instead")
@click.option("--rpc", "rpc_url", envvar="PUMPFIND_RPC_URL", help="Solana RPC endpoint URL")
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True)
def decode_cmd(payload, signature, rpc_url, config_path):
    """Decode one create-event payload (base64, with or without 'Program data: ')."""
    if not payload and not signature:
        raise click.UsageError("Pass a PAYLOAD or --signature")
    try:
        settings = load_settings(config_path).merged(rpc_url=rpc_url)
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint="config")

    if payload:
        try:
            mint = decode_mint(payload.replace("Program data: ", "", 1).strip())
        except DecodeError as e:
            raise click.ClickException(f"cannot decode payload: {e}")
    else:
        async def fetch():
            async with HttpxSolanaRPC(settings.rpc_url, timeout_s=settings.timeout_s) as rpc:
                return await rpc.get_parsed_transaction(Signature(signature))
        try:
            tx = asyncio.run(fetch())
        except (RPCError, httpx.HTTPError) as e:
            raise click.ClickException(f"{type(e).__name__}: {e}")
        if tx is None or tx.log_messages is None:
            raise click.ClickException(f"transaction {signature} not found or has no logs")
        mint = process_mint_logs(tx.log_messages, settings.markers)
        if mint is None:
            raise click.ClickException(f"no create event in {signature}")

    console.print_json(json.dumps(mint.to_json()))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
