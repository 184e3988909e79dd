from fsxmodels.cli import cli

cli()
