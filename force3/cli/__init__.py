# force3/cli/__init__.py
from .state import state_group
from .plan import plan_group


def register_cli(app):
    """Registra los grupos y comandos CLI de la app."""
    app.cli.add_command(state_group)
    app.cli.add_command(plan_group)
