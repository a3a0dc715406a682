"""Common CLI options for the CLI."""

import typer

EndpointOpt = typer.Option(
    None,
    "--endpoint",
    "-e",
    help="Dremio base URL (default: $DREMIO_ENDPOINT)",
)

PatOpt = typer.Option(
    None,
    "--pat",
    help="Dremio personal access token (default: $DREMIO_PAT)",
)

InsecureOpt = typer.Option(
    False,
    "--insecure",
    help="Skip TLS certificate verification",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log debug output to stderr",
)

NotesOpt = typer.Option(
    None,
    "--notes",
    help="JSON export of table/column notes to attach to the context",
    exists=True,
    dir_okay=False,
    readable=True,
)

FormatOpt = typer.Option(
    "table",
    "--format",
    "-f",
    help="Output format: table, json or markdown",
)

PickOpt = typer.Option(
    False,
    "--pick",
    help="Interactively pick items inside the given containers",
)

DepthOpt = typer.Option(
    None,
    "--depth",
    min=1,
    help="How many container levels to descend (default: $DREMIO_CONTAINER_DEPTH)",
)

SqlFileOpt = typer.Option(
    None,
    "--file",
    help="Read the SQL statement from a file",
    exists=True,
    dir_okay=False,
    readable=True,
)

CsvOpt = typer.Option(
    None,
    "--csv",
    help="Write the result page to a CSV file",
    dir_okay=False,
)

LimitOpt = typer.Option(
    None,
    "--limit",
    min=1,
    help="Rows to fetch from the result (default: $DREMIO_RESULT_ROW_LIMIT)",
)
