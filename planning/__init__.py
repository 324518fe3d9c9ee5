from __future__ import annotations

import logging

import click
from flask import Flask
from flask.cli import with_appcontext

from .config import Config, _normalise_prefix
from .extensions import db, migrate


def _configure_logging(app: Flask) -> None:
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    app.logger.setLevel(level)
    logging.getLogger(__name__).setLevel(level)


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)
    app.config["URL_PREFIX"] = _normalise_prefix(app.config.get("URL_PREFIX", ""))
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401  # Ensure models registered for migrations

    with app.app_context():
        db.create_all()

    from .api import init_api

    init_api(app)
    _register_commands(app)
    app.logger.debug("Application created with %s", config_class.__name__)
    return app


def _register_commands(app: Flask) -> None:
    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed initial data for development."""
        from .seed import seed_data

        seed_data()
        click.echo("Base de données initialisée avec des données d'exemple.")

    @app.cli.command("check-availability")
    @click.argument("trainer_id", type=int)
    @click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]))
    @click.argument("start", type=click.DateTime(formats=["%H:%M"]))
    @click.argument("end", type=click.DateTime(formats=["%H:%M"]))
    @with_appcontext
    def check_availability(trainer_id, day, start, end) -> None:
        """Tell whether TRAINER_ID is free on DAY between START and END."""
        from .availability import find_conflict
        from .errors import PlanningError

        try:
            conflict = find_conflict(trainer_id, day.date(), start.time(), end.time())
        except PlanningError as exc:
            raise click.ClickException(exc.message) from exc
        if conflict is None:
            click.echo("Disponible")
            return
        click.echo(
            "Occupé: {title} de {start} à {end}".format(
                title=conflict.title,
                start=conflict.start_time.strftime("%H:%M"),
                end=conflict.end_time.strftime("%H:%M"),
            )
        )

    @app.cli.command("calendar")
    @click.argument("year", type=int)
    @click.argument("month", type=click.IntRange(1, 12))
    @click.option("--trainer-id", type=int, default=None, help="Only this trainer's seances.")
    @with_appcontext
    def calendar(year: int, month: int, trainer_id) -> None:
        """Print the 6-week grid of a month with its seances."""
        from .calendar_grid import grid_bounds, month_view
        from .scheduler import query_seances

        first, last = grid_bounds(year, month)
        seances = query_seances(date_from=first, date_to=last, trainer_id=trainer_id)
        for index, (cell, day_seances) in enumerate(month_view(year, month, seances)):
            marker = " " if cell.is_current_month else "*"
            line = f"{cell.iso}{marker}"
            if day_seances:
                line += "  " + ", ".join(
                    f"{seance.start_time.strftime('%H:%M')} {seance.title}" for seance in day_seances
                )
            click.echo(line)
            if index % 7 == 6:
                click.echo("")
