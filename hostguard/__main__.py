from hostguard.main import cli

cli()
