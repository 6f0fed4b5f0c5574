from hookwarden.cli.cli import app

app()
