import asyncio
import logging

import typer
from dotenv import load_dotenv
from InquirerPy import inquirer

from bancor_indexer.app.interface.tasks import TASKS


load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
indexer_app = typer.Typer(help="cli for deriving Bancor v3 analytics from indexed logs.")
app.add_typer(indexer_app, name="indexer")


def _run_task(task_name: str, *, chain_id: int, from_block: str, to_block: str) -> None:
    task = TASKS[task_name]
    stats = asyncio.run(task(chain_id=chain_id, from_block=from_block, to_block=to_block))
    typer.echo(
        f"Done: processed={stats.processed} skipped={stats.skipped} failed={stats.failed}"
    )
    if stats.failed:
        raise typer.Exit(code=1)


@indexer_app.command("run")
def run() -> None:
    """Pick a task and a block range interactively."""
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()
    chain_id = int(
        inquirer.text(
            message="Chain ID (e.g. 1 for Ethereum mainnet):",
            default="1",
        ).execute()
    )
    from_block = inquirer.text(
        message="From block (inclusive, number or 'earliest'):",
        default="earliest",
    ).execute()
    to_block = inquirer.text(
        message="To block (inclusive, number or 'latest'):",
        default="latest",
    ).execute()

    _run_task(task_name, chain_id=chain_id, from_block=from_block, to_block=to_block)


@indexer_app.command("process")
def process(
    chain_id: int = typer.Option(1, "--chain-id", help="Chain the logs were indexed from."),
    from_block: str = typer.Option("earliest", "--from-block", help="Block number or 'earliest'."),
    to_block: str = typer.Option("latest", "--to-block", help="Block number or 'latest'."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Keep derived entities in memory only."),
) -> None:
    """Process Bancor v3 events for a block range without prompts."""
    task_name = (
        "subgraph__dry_run_bancor_v3_events_task"
        if dry_run
        else "subgraph__process_bancor_v3_events_task"
    )
    _run_task(task_name, chain_id=chain_id, from_block=from_block, to_block=to_block)


if __name__ == "__main__":
    typer.echo("\n  --- Bancor v3 Indexer CLI ---\n")
    app()
