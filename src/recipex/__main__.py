from recipex.cli import cli

cli()
