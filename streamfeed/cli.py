from __future__ import annotations

import typer

from streamfeed.core.config import settings
from streamfeed.core.logsetup import configure_logging

app_cli = typer.Typer(help="CLI for streamfeed")


def _common_env():
    host = settings.HOST
    port = settings.PORT
    app_module = settings.APP_MODULE
    return app_module, host, port


@app_cli.command()
def dev(
    host: str | None = None,
    port: int | None = None,
):
    """
    Starts in development mode (auto-reload).
    """
    import uvicorn
    app_module, h, p = _common_env()
    if host: h = host
    if port: p = port
    uvicorn.run(app_module, host=h, port=p, reload=True)


@app_cli.command()
def serve(
    host: str | None = None,
    port: int | None = None,
    workers: int = typer.Option(2, help="Workers for production"),
):
    """
    Starts in production mode (no reload).
    """
    import uvicorn
    app_module, h, p = _common_env()
    if host: h = host
    if port: p = port
    uvicorn.run(app_module, host=h, port=p, workers=workers)


@app_cli.command()
def check():
    """
    Shows basic effective configuration.
    """
    app_module, host, port = _common_env()
    typer.echo(f"APP_MODULE={app_module}")
    typer.echo(f"HOST={host}")
    typer.echo(f"PORT={port}")
    typer.echo(f"MEDIA_ROOT={settings.MEDIA_ROOT}")
    typer.echo(f"CONTENT_JSON={', '.join(settings.content_json_candidates)}")
    typer.echo(f"SEED_CONTENT={settings.SEED_CONTENT}")
    typer.echo(f"OMDB={'on' if settings.OMDB_API_KEY else 'off'}")
    typer.echo(f"ADMIN={'on' if settings.ADMIN_TOKEN else 'off'}")


@app_cli.command()
def seed(
    force: bool = typer.Option(False, "--force", help="Reload even when the catalog is not empty"),
):
    """
    Loads the seed file into the database.
    """
    from streamfeed.core.database import SessionLocal
    from streamfeed.models.tables import create_tables
    from streamfeed.services.seed import SeedReconciler

    configure_logging(settings.LOG_LEVEL)
    create_tables()
    reconciler = SeedReconciler.from_settings(settings)
    db = SessionLocal()
    try:
        report = reconciler.seed_content_if_needed(db, force=force)
    finally:
        db.close()
    if report is None:
        typer.echo("Nothing to do (catalog already populated; use --force to reload)")
        return
    typer.echo(
        f"{report.path}: inserted={report.inserted} updated={report.updated} "
        f"skipped={report.skipped} total={report.total}"
    )


@app_cli.command("next-id")
def next_id(content_type: str = typer.Argument(..., metavar="TYPE", help="Movie or Series")):
    """
    Prints the next free external id for a content type.
    """
    from streamfeed.core.database import SessionLocal
    from streamfeed.core.errors import ValidationError
    from streamfeed.services.admin import compute_next_ext_id

    db = SessionLocal()
    try:
        typer.echo(compute_next_ext_id(db, content_type))
    except ValidationError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()


@app_cli.command("repair-media")
def repair_media():
    """
    Clears references to media files missing under MEDIA_ROOT.
    """
    from streamfeed.core.database import SessionLocal
    from streamfeed.services.admin import repair_media_paths
    from streamfeed.services.media import MediaChecker

    configure_logging(settings.LOG_LEVEL)
    db = SessionLocal()
    try:
        report = repair_media_paths(db, MediaChecker(settings.MEDIA_ROOT), user_id="cli")
    finally:
        db.close()
    typer.echo(" ".join(f"{key}={value}" for key, value in report.items()))


if __name__ == "__main__":
    app_cli()
