"""
Checkpoint commands: create, get, set-status, list, latest, audit
"""

import json
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from checkpointing.checkpoint import (
    CheckpointRecord,
    CheckpointStatus,
    CheckpointStore,
    RawCheckpoint,
    verify_monotonicity,
)
from checkpointing.config import DEFAULT_STORE_PATH, StoreConfig, open_checkpoint_store
from checkpointing.core.errors import (
    CheckpointingError,
    IdentityMismatch,
    RecordExists,
    RecordNotFound,
    WriteConflict,
)
from checkpointing.query import latest_with_status, list_by_status, record_to_dict

app = typer.Typer()
console = Console()

# Exit codes: 1 = caller-recoverable (not found, exists, mismatch, conflict), 2 = bad input or corrupt store
EXIT_RECOVERABLE = 1
EXIT_FAILURE = 2


def _store_option():
    return typer.Option(
        DEFAULT_STORE_PATH,
        "--store",
        "-s",
        envvar="CKPT_STORE_PATH",
        help="Path to checkpoint store directory",
    )


def _json_option():
    return typer.Option(False, "--json", help="Output as JSON")


def _open_store(store_path: str) -> CheckpointStore:
    return open_checkpoint_store(StoreConfig.from_env().with_path(store_path))


def _fail(message: str, code: int, json_output: bool) -> NoReturn:
    if json_output:
        print(json.dumps({"success": False, "error": message}))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)


def _fail_for(error: CheckpointingError, json_output: bool) -> NoReturn:
    if isinstance(error, (RecordNotFound, RecordExists, IdentityMismatch, WriteConflict)):
        _fail(str(error), EXIT_RECOVERABLE, json_output)
    _fail(str(error), EXIT_FAILURE, json_output)


def _parse_hex(value: str, name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise ValueError(f"{name} is not valid hex: {value!r}") from None


def _build_checkpoint(
    epoch: int, last_commit_hash: str, bitmap: str, bls_multi_sig: str
) -> RawCheckpoint:
    return RawCheckpoint(
        epoch_num=epoch,
        last_commit_hash=_parse_hex(last_commit_hash, "--last-commit-hash"),
        bitmap=_parse_hex(bitmap, "--bitmap"),
        bls_multi_sig=_parse_hex(bls_multi_sig, "--bls-multi-sig"),
    )


def _print_record(record: CheckpointRecord, json_output: bool, title: str) -> None:
    if json_output:
        print(json.dumps(record_to_dict(record), indent=2))
        return

    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Epoch", str(record.epoch_num))
    table.add_row("Status", f"[green]{record.status.name}[/green]")
    table.add_row("Hash", record.ckpt.hash_hex())
    table.add_row("Last commit hash", record.ckpt.last_commit_hash.hex() or "-")
    table.add_row("Bitmap", record.ckpt.bitmap.hex() or "-")
    table.add_row("BLS multi-sig", record.ckpt.bls_multi_sig.hex() or "-")
    console.print(table)


@app.command()
def create(
    epoch: int = typer.Option(..., "--epoch", "-e", min=0, help="Epoch number"),
    last_commit_hash: str = typer.Option(..., "--last-commit-hash", help="Last commit hash (hex)"),
    bitmap: str = typer.Option("", "--bitmap", help="Signer bitmap (hex)"),
    bls_multi_sig: str = typer.Option("", "--bls-multi-sig", help="Aggregated signature (hex)"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing record"),
    store_path: str = _store_option(),
    json_output: bool = _json_option(),
):
    """
    Record a raw checkpoint with status UNCHECKPOINTED.

    Examples:
        ckptctl checkpoint create --epoch 7 --last-commit-hash ab12...
        ckptctl checkpoint create -e 7 --last-commit-hash ab12... --overwrite
    """
    try:
        ckpt = _build_checkpoint(epoch, last_commit_hash, bitmap, bls_multi_sig)
        record = _open_store(store_path).create(ckpt, overwrite=overwrite)
    except ValueError as e:
        _fail(str(e), EXIT_FAILURE, json_output)
    except CheckpointingError as e:
        _fail_for(e, json_output)

    _print_record(record, json_output, title=f"Created checkpoint {epoch}")


@app.command()
def get(
    epoch: int = typer.Argument(..., min=0, help="Epoch number"),
    store_path: str = _store_option(),
    json_output: bool = _json_option(),
):
    """
    Show the checkpoint recorded at an epoch.

    Examples:
        ckptctl checkpoint get 7
        ckptctl checkpoint get 7 --json
    """
    try:
        record = _open_store(store_path).get_by_epoch(epoch)
    except ValueError as e:
        _fail(str(e), EXIT_FAILURE, json_output)
    except CheckpointingError as e:
        _fail_for(e, json_output)

    _print_record(record, json_output, title=f"Checkpoint {epoch}")


@app.command("set-status")
def set_status(
    epoch: int = typer.Argument(..., min=0, help="Epoch number"),
    status: str = typer.Argument(..., help="New status (e.g. SEALED, SUBMITTED, CONFIRMED)"),
    last_commit_hash: str = typer.Option(..., "--last-commit-hash", help="Last commit hash (hex)"),
    bitmap: str = typer.Option("", "--bitmap", help="Signer bitmap (hex)"),
    bls_multi_sig: str = typer.Option("", "--bls-multi-sig", help="Aggregated signature (hex)"),
    store_path: str = _store_option(),
    json_output: bool = _json_option(),
):
    """
    Move a checkpoint to a new status after verifying its digest.

    The checkpoint fields must reproduce the stored payload exactly.

    Examples:
        ckptctl checkpoint set-status 7 CONFIRMED --last-commit-hash ab12...
    """
    try:
        new_status = CheckpointStatus.parse(status)
        ckpt = _build_checkpoint(epoch, last_commit_hash, bitmap, bls_multi_sig)
        record = _open_store(store_path).update_status(ckpt, new_status)
    except ValueError as e:
        _fail(str(e), EXIT_FAILURE, json_output)
    except CheckpointingError as e:
        _fail_for(e, json_output)

    _print_record(record, json_output, title=f"Checkpoint {epoch} -> {record.status.name}")


@app.command("list")
def list_checkpoints(
    status: str = typer.Option("CONFIRMED", "--status", "-t", help="Status to list"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=0, help="Maximum records"),
    offset: int = typer.Option(0, "--offset", min=0, help="Matches to skip"),
    store_path: str = _store_option(),
    json_output: bool = _json_option(),
):
    """
    List checkpoints with a status, highest epoch first.

    Examples:
        ckptctl checkpoint list --status UNCHECKPOINTED
        ckptctl checkpoint list --status CONFIRMED --limit 10 --offset 20
    """
    try:
        wanted = CheckpointStatus.parse(status)
        records = list_by_status(_open_store(store_path), wanted, limit=limit, offset=offset)
    except ValueError as e:
        _fail(str(e), EXIT_FAILURE, json_output)
    except CheckpointingError as e:
        _fail_for(e, json_output)

    if json_output:
        print(
            json.dumps(
                {"checkpoints": [record_to_dict(r) for r in records], "count": len(records)},
                indent=2,
            )
        )
        return

    if not records:
        console.print(f"[yellow]No checkpoints with status {wanted.name}[/yellow]")
        return

    table = Table(title=f"Checkpoints: {wanted.name}")
    table.add_column("Epoch", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Hash (prefix)", style="dim")
    for record in records:
        table.add_row(str(record.epoch_num), record.status.name, record.ckpt.hash_hex()[:16])
    console.print(table)
    console.print(f"\n[bold]Total checkpoints:[/bold] {len(records)}")


@app.command()
def latest(
    status: str = typer.Option("CONFIRMED", "--status", "-t", help="Status to look for"),
    store_path: str = _store_option(),
    json_output: bool = _json_option(),
):
    """
    Show the highest-epoch checkpoint with a status.

    Examples:
        ckptctl checkpoint latest
        ckptctl checkpoint latest --status SUBMITTED --json
    """
    try:
        wanted = CheckpointStatus.parse(status)
        record = latest_with_status(_open_store(store_path), wanted)
    except ValueError as e:
        _fail(str(e), EXIT_FAILURE, json_output)
    except CheckpointingError as e:
        _fail_for(e, json_output)

    if record is None:
        _fail(f"no checkpoint with status {wanted.name}", EXIT_RECOVERABLE, json_output)

    _print_record(record, json_output, title=f"Latest {wanted.name} checkpoint")


@app.command()
def audit(
    store_path: str = _store_option(),
    json_output: bool = _json_option(),
):
    """
    Check that no unconfirmed epoch sits below a confirmed one.

    Examples:
        ckptctl checkpoint audit
        ckptctl checkpoint audit --json
    """
    try:
        report = verify_monotonicity(_open_store(store_path))
    except ValueError as e:
        _fail(str(e), EXIT_FAILURE, json_output)
    except CheckpointingError as e:
        _fail_for(e, json_output)

    if json_output:
        print(json.dumps(report.__dict__, sort_keys=True, indent=2))
    elif report.error:
        console.print(f"[red]Audit failed:[/red] {report.error}")
    elif report.valid:
        console.print(f"[green]✓ Monotonicity holds[/green] ({report.checked} records checked)")
    else:
        console.print(
            f"[red]✗ {len(report.violations)} unconfirmed epoch(s) below "
            f"confirmed epoch {report.highest_confirmed}[/red]"
        )
        console.print(f"  Epochs: {', '.join(str(e) for e in report.violations)}")

    if report.error:
        raise typer.Exit(EXIT_FAILURE)
    if not report.valid:
        raise typer.Exit(EXIT_RECOVERABLE)
