from hookrunner.apps.cli.app import app

app()
