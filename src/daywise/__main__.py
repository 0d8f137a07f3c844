from daywise.cli import app

app()
