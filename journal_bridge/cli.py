"""Command line entry point"""

import click
import uvicorn

from journal_bridge.core.config import get_settings
from journal_bridge.core.logging_config import setup_logging
from journal_bridge.main import create_app


@click.command()
@click.option('--port', '-p', type=int, help='Server port number')
@click.option('--host', help='Address to bind')
@click.option('--auth-user', '--au', help='Username for basic auth')
@click.option('--auth-password', '--ap', help='Password for basic auth')
@click.option('--docker', is_flag=True,
              help='Add container names for Docker scopes (with journald logging driver)')
@click.option('--user', '-u', 'user_scope', is_flag=True, help='User logs')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Log level')
def cli(port, host, auth_user, auth_password, docker, user_scope, log_level):
    """Serve journalctl output over HTTP and WebSocket"""
    # Flags only override the environment when given
    settings = get_settings(
        port=port,
        host=host,
        auth_username=auth_user,
        auth_password=auth_password,
        docker=docker or None,
        user_scope=user_scope or None,
        log_level=log_level
    )
    setup_logging(settings.log_level)

    app = create_app(settings)
    # log_config=None lets uvicorn's loggers propagate to our handler
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == '__main__':
    cli()
