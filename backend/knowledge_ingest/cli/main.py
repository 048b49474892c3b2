"""CLI entrypoint for the ingestion service."""

from __future__ import annotations

import json
import mimetypes
import os
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="kngi", help="Knowledge ingest command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("KNGI_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=300, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except Exception:  # noqa: BLE001
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    user: str = typer.Option(..., "--user", help="Owning user ID"),
    media_type: Optional[str] = typer.Option(None, "--type", help="Override the detected media type"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Upload a PDF or image as a pending document."""
    resolved = path.expanduser()
    content_type = media_type or mimetypes.guess_type(resolved.name)[0] or "application/octet-stream"
    with resolved.open("rb") as fh:
        resp = _request(
            "POST",
            "/documents",
            host=host,
            files={"file": (resolved.name, fh, content_type)},
            data={"user_id": user},
        )
    _echo(resp)


@app.command()
def process(
    document_ids: List[str] = typer.Argument(..., help="Document IDs to ingest"),
    reset: bool = typer.Option(False, "--reset", help="Delete existing chunks before ingesting"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Run the ingestion pipeline for one or more documents."""
    if len(document_ids) == 1:
        resp = _request(
            "POST",
            f"/documents/{document_ids[0]}/process",
            host=host,
            params={"reset_chunks": str(reset).lower()},
        )
    else:
        resp = _request(
            "POST",
            "/documents/process",
            host=host,
            json={"document_ids": document_ids, "reset_chunks": reset},
        )
    _echo(resp)


@app.command()
def show(
    document_id: str = typer.Argument(..., help="Document ID"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show a document record."""
    _echo(_request("GET", f"/documents/{document_id}", host=host))


@app.command()
def chunks(
    document_id: str = typer.Argument(..., help="Document ID"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List a document's chunks in index order."""
    _echo(_request("GET", f"/documents/{document_id}/chunks", host=host))


@app.command("clear-chunks")
def clear_chunks(
    document_id: str = typer.Argument(..., help="Document ID"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete a document's chunks so it can be ingested again."""
    _echo(_request("DELETE", f"/documents/{document_id}/chunks", host=host))


@app.command()
def cleanup(
    older_than: Optional[int] = typer.Option(None, "--older-than", help="Minutes before a document counts as stuck"),
    user: Optional[str] = typer.Option(None, "--user", help="Restrict to one user"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Mark documents stuck in pending/processing as failed."""
    payload = {"older_than_minutes": older_than, "user_id": user}
    _echo(_request("POST", "/maintenance/cleanup-stale", host=host, json=payload))


@app.command()
def stats(
    user: Optional[str] = typer.Option(None, "--user", help="Restrict to one user"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Print document processing statistics."""
    params = {"user_id": user} if user else None
    _echo(_request("GET", "/stats", host=host, params=params))


if __name__ == "__main__":
    app()
