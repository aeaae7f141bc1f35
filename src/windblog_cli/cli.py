from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import typer

from windblog import AppConfig, load_config
from windblog.assets import AssetMinifyRegistry, register_source, resolve_source
from windblog.blog import BlogService
from windblog.schemas import Post, PostStatus, now_utc
from windblog.search import ElasticIndexer, SearchIndexError, rebuild_all
from windblog.storage import Repository
from windblog.version import get_protocol_identifier, get_protocol_name, get_version

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="windblog service helpers")
assets_app = typer.Typer(help="Minified asset map commands")
posts_app = typer.Typer(help="Post listing commands")
search_app = typer.Typer(help="Search index commands")
debug_app = typer.Typer(help="Debug commands")
app.add_typer(assets_app, name="assets")
app.add_typer(posts_app, name="posts")
app.add_typer(search_app, name="search")
app.add_typer(debug_app, name="debug")

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    help="Config file path (JSON or YAML). Defaults are used when omitted.",
    exists=True,
    dir_okay=False,
    readable=True,
)


@app.command("version")
def version(
    level: str | None = typer.Option(
        None,
        "--level",
        help="Link level to prefix, e.g. CAT5E.",
    ),
) -> None:
    """Print the Wind Connect protocol version."""
    if level is None:
        typer.echo(f"{get_protocol_name()} {get_version()}")
        return

    try:
        typer.echo(get_protocol_identifier(level))
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@assets_app.command("put")
def assets_put(
    hash_value: str = typer.Option(..., "--hash", help="Content hash of the source file."),
    ext: str = typer.Option(..., "--ext", help="Asset extension (js, css)."),
    src: str = typer.Option(..., "--src", help="Source (unminified) file path."),
    mtime: int = typer.Option(..., "--mtime", min=0, help="Source mtime as Unix seconds."),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Record one hash -> source mapping."""
    registry = AssetMinifyRegistry.from_config(_load_config(config_path))
    try:
        registry.put(hash_value, ext, src, mtime)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"map={registry.map_path}")


@assets_app.command("get")
def assets_get(
    hash_value: str = typer.Option(..., "--hash", help="Content hash."),
    ext: str = typer.Option(..., "--ext", help="Asset extension (js, css)."),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Look up a hash in the asset map."""
    registry = AssetMinifyRegistry.from_config(_load_config(config_path))
    entry = registry.get(hash_value, ext)
    if entry is None:
        typer.echo("not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(entry.model_dump_json())


@assets_app.command("register")
def assets_register(
    source: Path = typer.Argument(
        ...,
        help="Source file to fingerprint and record.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Fingerprint a source file and record it in the asset map."""
    registry = AssetMinifyRegistry.from_config(_load_config(config_path))
    try:
        entry = register_source(registry, source)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    if entry is None:
        typer.echo(f"could not read {source}", err=True)
        raise typer.Exit(code=1)
    typer.echo(entry.model_dump_json())


@assets_app.command("resolve")
def assets_resolve(
    hash_value: str = typer.Option(..., "--hash", help="32-character MD5 hash."),
    ext: str = typer.Option(..., "--ext", help="js or css."),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Find the source file behind /assets/min/<hash>.<ext>."""
    config = _load_config(config_path)
    registry = AssetMinifyRegistry.from_config(config)
    source = resolve_source(registry, config.public_path, hash_value, ext)
    if source is None:
        typer.echo("not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(str(source))


@posts_app.command("list")
def posts_list(
    page: int = typer.Option(1, "--page", min=1, help="1-based page number."),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """List one front page of posts, newest first."""
    config = _load_config(config_path)
    blog = BlogService(Repository(config.database.path))
    posts = blog.get_posts(page)
    typer.echo(_render_post_table(posts))
    typer.echo(f"page={page} posts={len(posts)}")


@search_app.command("rebuild")
def search_rebuild(
    page_size: int | None = typer.Option(
        None,
        "--page-size",
        min=1,
        help="Records fetched per page. Defaults to search.rebuild_page_size.",
    ),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Reindex all tags, categories and published posts."""
    config = _load_config(config_path)
    if not config.search.enabled:
        logger.warning("search.enabled is false; rebuilding anyway")

    repo = Repository(config.database.path)
    indexer = ElasticIndexer.from_config(config.search)
    ok = rebuild_all(
        repo,
        indexer,
        page_size=page_size or config.search.rebuild_page_size,
    )
    if not ok:
        typer.echo("rebuild failed; see log for details", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"rebuild ok requests={indexer.sync_log_count()}")


@search_app.command("create-index")
def search_create_index(
    analyzer: str | None = typer.Option(
        None,
        "--analyzer",
        help="standard or ik_max_word. Defaults to search.analyzer.",
    ),
    config_path: Path | None = _CONFIG_OPTION,
) -> None:
    """Create the search index with the post/tag/category mapping."""
    config = _load_config(config_path)
    indexer = ElasticIndexer.from_config(config.search)
    try:
        indexer.create_index(analyzer or config.search.analyzer)
    except (ValueError, SearchIndexError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"index={config.search.index} created")


@debug_app.command("storage")
def debug_storage() -> None:
    """Run storage smoke test in a throwaway directory."""
    with tempfile.TemporaryDirectory(prefix="windblog-debug-") as scratch:
        scratch_dir = Path(scratch)
        logger.info("debug storage scratch=%s", scratch_dir)
        repo = Repository(scratch_dir / "storage.db")
        registry = AssetMinifyRegistry(scratch_dir / "runtime")

        registry.put("debug", "js", "debug/storage.js", 0)
        registry.refresh()
        cached = registry.get("debug", "js")

        sample = Post(
            id=0,
            title="storage smoke test",
            slug="debug-storage",
            status=PostStatus.DRAFT,
            created_at=now_utc(),
        )
        repo.upsert_post(sample)
        stored = repo.get_post(sample.id)

    if cached is None or stored is None:
        typer.echo("storage smoke test failed", err=True)
        raise typer.Exit(code=1)

    typer.echo("storage ok")


def _load_config(config_path: Path | None) -> AppConfig:
    try:
        return load_config(config_path)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


def _render_post_table(posts: list[Post]) -> str:
    if not posts:
        return "no posts found"

    headers = ("id", "created_at", "author", "title")
    rows = [
        (
            str(post.id),
            post.created_at.strftime("%Y-%m-%d %H:%M"),
            post.author_name,
            _truncate(post.title, limit=60),
        )
        for post in posts
    ]

    widths = [
        max(len(headers[column]), *(len(row[column]) for row in rows))
        for column in range(len(headers))
    ]

    def _line(values: tuple[str, str, str, str]) -> str:
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
