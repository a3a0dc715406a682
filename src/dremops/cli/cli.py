"""CLI application for Dremio catalog and query tooling."""

import typer

from dremops.cli.commands.catalog import catalog_app
from dremops.cli.commands.datacontext import context_app
from dremops.cli.commands.sql import sql_app

app = typer.Typer(
    help="dremops - Dremio catalog, data context and SQL tooling",
    no_args_is_help=True,
)

app.add_typer(catalog_app, name="catalog")
app.add_typer(context_app, name="context")
app.add_typer(sql_app, name="sql")


if __name__ == "__main__":
    app()
