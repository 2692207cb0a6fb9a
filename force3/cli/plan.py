# force3/cli/plan.py
import click
from flask.cli import AppGroup

from force3.services.app_state import current_state
from force3.services.plan_generator import (
    PLAN_WEEKS,
    generate_plan,
    plan_to_markdown,
    week_checklist_markdown,
)
from force3.utils.units import goal_paces

plan_group = AppGroup("plan", help="Plan de 16 semanas del perfil guardado")


@plan_group.command("show")
@click.option("--week", type=click.IntRange(1, PLAN_WEEKS), default=None,
              help="Solo esa semana (1-16), como checklist")
def show_plan(week):
    """Imprime el plan en Markdown."""
    plan = generate_plan(current_state().profile)
    if week:
        click.echo(week_checklist_markdown(plan[week - 1]))
    else:
        click.echo(plan_to_markdown(plan))


@plan_group.command("paces")
@click.argument("goal_time")
def show_paces(goal_time):
    """Ritmos objetivo para un tiempo de maratón (p. ej. 3:00:00)."""
    unit = current_state().profile.units.distance
    paces = goal_paces(goal_time, unit)
    if not paces["mp"]:
        raise click.ClickException("Tiempo objetivo inválido; usa H:MM:SS")
    click.echo(f"MP  {paces['mp']}")
    click.echo(f"HMP {paces['hmp']}")
    click.echo(f"10K {paces['k10']}")
