# billing_core/cli.py

import click

from billing_core import db


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        with app.app_context():
            db.create_all()
            click.echo("Database tables created.")

    @app.cli.command("reset-db")
    def reset_db():
        with app.app_context():
            db.drop_all()
            db.create_all()
            click.echo("Database reset complete.")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.argument("password")
    @click.option("--email", default=None)
    def create_user(username, password, email):
        from .auth import register_user
        from .errors import ApiError

        with app.app_context():
            try:
                user = register_user(username, password, email)
            except ApiError as e:
                raise click.ClickException(e.message)
            click.echo(f"User '{user.username}' created.")
