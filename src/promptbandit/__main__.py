from promptbandit.cli import app

app()
