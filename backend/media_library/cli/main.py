"""CLI entrypoint for the media library."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="medlib", help="Media library command-line interface")
items_app = typer.Typer(name="items", help="Manage catalog items")
app.add_typer(items_app, name="items")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("MEDLIB_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=120, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Could not reach {base}: {exc}", err=True)
        raise typer.Exit(code=1)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command()
def search(
    query: str = typer.Argument(..., help="Natural-language description of what you want"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, max=20, help="Maximum results"),
    enhance: bool = typer.Option(False, "--enhance", help="Rewrite the query into keywords first"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Semantic search with an explanation per hit."""
    if enhance:
        query = _request("POST", "/enhance-query", host=host, json={"query": query}).json()["enhanced"]
        typer.echo(f"Enhanced query: {query}", err=True)
    payload: dict[str, object] = {"query": query}
    if limit is not None:
        payload["max_results"] = limit
    results = _request("POST", "/search", host=host, json=payload).json()
    if not results:
        typer.echo("No relevant items found.")
        return
    for result in results:
        typer.echo(f"{result['title']} [{result['type']}] (distance {result['relevance_score']:.3f})")
        typer.echo(f"  {result['explanation']}")


@app.command()
def random(
    prompt: Optional[str] = typer.Argument(None, help="Optional mood or request"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Pick something from the library."""
    pick = _request("POST", "/random", host=host, json={"prompt": prompt}).json()
    typer.echo(f"{pick['item']['title']} [{pick['item']['type']}]")
    typer.echo(pick["reason"])


@app.command()
def backup(
    output: Path = typer.Argument(..., help="File to write the backup to"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Export every item to a JSON file."""
    resp = _request("GET", "/backup", host=host)
    target = output.expanduser()
    target.write_bytes(resp.content)
    typer.echo(f"Wrote {len(resp.json())} items to {target}")


@app.command()
def restore(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="Backup file to load"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Replace the whole library with the contents of a backup file."""
    items = json.loads(source.expanduser().read_text(encoding="utf-8"))
    if not isinstance(items, list):
        typer.echo("Backup file must contain a JSON array", err=True)
        raise typer.Exit(code=1)
    if not yes:
        typer.confirm(f"This deletes every item and loads {len(items)} from {source}. Continue?", abort=True)
    _echo_json(_request("POST", "/restore", host=host, json=items).json())


@app.command("cancel-restore")
def cancel_restore(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Stop a restore that is still loading items."""
    cancelled = _request("POST", "/restore/cancel", host=host).json()["cancelled"]
    typer.echo("Restore cancellation requested" if cancelled else "No restore is running")


@app.command()
def reindex(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Re-embed every stored item into the vector index."""
    _echo_json(_request("POST", "/reindex", host=host).json())


@items_app.command("list")
def list_items(
    search: Optional[str] = typer.Option(None, "--search", help="Title substring"),
    type: Optional[str] = typer.Option(None, "--type", help="Media type, e.g. MOVIE"),
    sort_by: str = typer.Option("createdAt", "--sort-by", help="createdAt or title"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List catalog items."""
    params = {"sort_by": sort_by}
    if search:
        params["search"] = search
    if type:
        params["type"] = type.upper()
    for item in _request("GET", "/items", host=host, params=params).json():
        typer.echo(f"{item['id']}  {item['title']} [{item['type']}]")


@items_app.command("add")
def add_item(
    title: str = typer.Argument(..., help="Item title"),
    type: str = typer.Option(..., "--type", help="Media type, e.g. MOVIE"),
    synopsis: Optional[str] = typer.Option(None, "--synopsis", help="Synopsis; autofilled when omitted"),
    keyword: List[str] = typer.Option([], "--keyword", "-k", help="Keyword, repeatable"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Personal notes"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Add an item, asking the generation model for missing details."""
    payload: dict[str, object] = {
        "title": title,
        "type": type.upper(),
        "synopsis": synopsis,
        "keywords": keyword,
        "metadata": {},
        "notes": notes,
    }
    if synopsis is None:
        suggestion = _request("POST", "/autofill", host=host, json={"title": title, "type": type.upper()}).json()
        payload["synopsis"] = suggestion["synopsis"]
        payload["keywords"] = keyword or suggestion["keywords"]
        payload["metadata"] = suggestion["metadata"]
        payload["cover_image"] = suggestion.get("cover_image_url")
    _echo_json(_request("POST", "/items", host=host, json=payload).json())


@items_app.command("remove")
def remove_item(
    item_id: str = typer.Argument(..., help="Item identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete an item."""
    _request("DELETE", f"/items/{item_id}", host=host)
    _echo_json({"success": True})


if __name__ == "__main__":
    app()
