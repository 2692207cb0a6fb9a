# force3/cli/state.py
import json
import os
from datetime import datetime

import click
from flask.cli import AppGroup

from force3.services.app_state import StateImportError, current_state, state_manager

state_group = AppGroup("state", help="Backup y reset del estado (JSON)")


@state_group.command("export")
@click.option("--to", "dest_path", default=None,
              help="Ruta destino del JSON (por defecto: instance/force3_backup_YYYYMMDD.json)")
def export_state(dest_path):
    """Exporta perfil, registro, ajustes y plantilla de hoy a un JSON."""
    if not dest_path:
        ts = datetime.now().strftime("%Y%m%d")
        dest_path = os.path.join("instance", f"force3_backup_{ts}.json")
    os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)

    doc = state_manager().export_state(current_state())
    with open(dest_path, "w", encoding="utf-8") as fh:
        json.dump(doc, fh, indent=2, ensure_ascii=False)

    click.secho(f"Exportadas {len(doc['logs'])} entradas a: {dest_path}", fg="green")


@state_group.command("import")
@click.argument("src_path", type=click.Path(exists=True, dir_okay=False))
def import_state(src_path):
    """Sustituye el estado por el de un backup (requiere profile y logs)."""
    try:
        with open(src_path, encoding="utf-8") as fh:
            doc = json.load(fh)
    except ValueError as e:
        raise click.ClickException(f"JSON inválido: {e}")
    try:
        state = state_manager().import_state(doc)
    except StateImportError as e:
        raise click.ClickException(str(e))
    click.secho(f"Importadas {len(state.logs)} entradas desde: {src_path}", fg="green")


@state_group.command("reset")
@click.confirmation_option(prompt="¿Borrar perfil, registro, flags, versiones y notas?")
def reset_state():
    """Borra todos los documentos persistidos."""
    state_manager().reset()
    click.secho("Estado reseteado.", fg="yellow")
