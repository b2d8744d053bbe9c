from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import NoReturn

import typer

from blockvault.config import VaultConfig, load_config
from blockvault.schemas import FileRecord, NotFound
from blockvault.service import FileVault
from blockvault.storage import open_storage

DEFAULT_FILE_TYPE = "application/octet-stream"

app = typer.Typer(help="BlockVault CLI")
debug_app = typer.Typer(help="Debug commands")
app.add_typer(debug_app, name="debug")


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="Config file path (JSON or YAML).",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    db_path: Path | None = typer.Option(
        None,
        "--db-path",
        help="SQLite metadata DB path. Overrides the config file.",
    ),
    content_dir: Path | None = typer.Option(
        None,
        "--content-dir",
        help="Content blob directory. Overrides the config file.",
    ),
) -> None:
    """Manage files stored in a BlockVault."""
    try:
        config = load_config(config_path) if config_path is not None else VaultConfig()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    storage_overrides: dict[str, str] = {}
    if db_path is not None:
        storage_overrides["db_path"] = str(db_path)
    if content_dir is not None:
        storage_overrides["content_dir"] = str(content_dir)
    if storage_overrides:
        config = config.model_copy(
            update={"storage": config.storage.model_copy(update=storage_overrides)}
        )

    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.obj = config


@app.command("upload")
def upload(
    ctx: typer.Context,
    path: Path = typer.Argument(
        ...,
        help="File to upload.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    name: str | None = typer.Option(
        None,
        "--name",
        help="Stored file name. Defaults to the basename.",
    ),
    file_type: str | None = typer.Option(
        None,
        "--type",
        help="MIME type. Guessed from the file name when omitted.",
    ),
    size: int | None = typer.Option(
        None,
        "--size",
        min=0,
        help="Declared size in bytes. Defaults to the content length.",
    ),
) -> None:
    """Upload a file's metadata and content."""
    content = path.read_bytes()
    file_name = name or path.name
    if file_type is None:
        guessed, _ = mimetypes.guess_type(file_name)
        file_type = guessed or DEFAULT_FILE_TYPE

    try:
        record = _vault(ctx).upload(
            file_name=file_name,
            file_size=len(content) if size is None else size,
            file_type=file_type,
            content=content,
        )
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(record.to_json())


@app.command("list")
def list_files(ctx: typer.Context) -> None:
    """List metadata for every stored file."""
    typer.echo(_render_record_table(_vault(ctx).list_all()))


@app.command("get")
def get_file(
    ctx: typer.Context,
    file_id: str = typer.Argument(..., help="File id."),
    out: Path | None = typer.Option(None, "--out", help="Write the file content to this path."),
) -> None:
    """Show a file's metadata and optionally save its content."""
    result = _vault(ctx).get_by_id(file_id)
    if isinstance(result, NotFound):
        _fail_not_found(result)

    record, content = result
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(content)
    typer.echo(record.to_json())
    if out is not None:
        typer.echo(f"content_out={out} bytes={len(content)}")


@app.command("update")
def update_file(
    ctx: typer.Context,
    file_id: str = typer.Argument(..., help="File id."),
    name: str = typer.Option(..., "--name", help="New file name."),
    file_type: str = typer.Option(..., "--type", help="New MIME type."),
) -> None:
    """Replace a file's name and type."""
    result = _vault(ctx).update_metadata(file_id, file_name=name, file_type=file_type)
    if isinstance(result, NotFound):
        _fail_not_found(result)
    typer.echo(result.to_json())


@app.command("delete")
def delete_file(
    ctx: typer.Context,
    file_id: str = typer.Argument(..., help="File id."),
) -> None:
    """Delete a file's metadata and content."""
    result = _vault(ctx).delete_file(file_id)
    if isinstance(result, NotFound):
        _fail_not_found(result)
    typer.echo(result.to_json())


@debug_app.command("storage")
def debug_storage(ctx: typer.Context) -> None:
    """Run storage smoke test."""
    vault = _vault(ctx)
    sample = b"storage smoke content"
    record = vault.upload(
        file_name="debug-storage.txt",
        file_size=len(sample),
        file_type="text/plain",
        content=sample,
    )
    fetched = vault.get_by_id(record.id)
    deleted = vault.delete_file(record.id)

    if isinstance(fetched, NotFound) or fetched.content != sample or isinstance(deleted, NotFound):
        typer.echo("storage smoke test failed", err=True)
        raise typer.Exit(code=1)

    typer.echo("storage ok")


def _vault(ctx: typer.Context) -> FileVault:
    config: VaultConfig = ctx.find_root().obj
    return FileVault(open_storage(config.storage))


def _fail_not_found(result: NotFound) -> NoReturn:
    typer.echo(result.message, err=True)
    raise typer.Exit(code=1)


def _render_record_table(records: list[FileRecord]) -> str:
    if not records:
        return "no files stored"

    headers = ("id", "name", "size", "type", "uploaded_at")
    rows = [
        (
            record.id,
            _truncate(record.file_name, limit=40),
            str(record.file_size),
            record.file_type,
            record.uploaded_at.isoformat(timespec="seconds"),
        )
        for record in records
    ]

    widths = [
        max(len(headers[column]), *(len(row[column]) for row in rows))
        for column in range(len(headers))
    ]

    def _line(values: tuple[str, ...]) -> str:
        return " | ".join(
            value.ljust(widths[index]) for index, value in enumerate(values)
        )

    divider = "-+-".join("-" * width for width in widths)
    body = [_line(headers), divider]
    body.extend(_line(row) for row in rows)
    return "\n".join(body)


def _truncate(text: str, *, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
