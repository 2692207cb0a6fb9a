# force3/__init__.py

import os
import logging
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Carga variables de entorno (.env)
load_dotenv()

# Extensiones compartidas
db = SQLAlchemy()
migrate = Migrate()


def _require_secret_key() -> str:
    """Lee SECRET_KEY de entorno y exige mínimo 32 bytes."""
    secret = os.getenv("SECRET_KEY", "")
    if not secret or len(secret) < 32:
        raise RuntimeError(
            "SECRET_KEY no configurado o demasiado corto. "
            "Añade una clave segura al .env (32 caracteres o más)."
        )
    return secret


def _configure_logging(app: Flask) -> None:
    """Logging simple y consistente."""
    level = logging.DEBUG if app.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def create_app(config: dict | None = None) -> Flask:
    """Factory principal de la aplicación."""
    app = Flask(__name__, instance_relative_config=True)
    overrides = dict(config or {})

    # Asegura carpeta instance/
    os.makedirs(app.instance_path, exist_ok=True)

    # DB por defecto (SQLite en instance/force3.db)
    db_path = os.path.join(app.instance_path, "force3.db")
    default_db_uri = f"sqlite:///{db_path}"

    # -----------------------------
    # Config base
    # -----------------------------
    app.config.from_mapping(
        SECRET_KEY=overrides.get("SECRET_KEY") or _require_secret_key(),
        SQLALCHEMY_DATABASE_URI=os.getenv("SQLALCHEMY_DATABASE_URI", default_db_uri),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JSON_SORT_KEYS=False,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=os.getenv("FLASK_ENV", "").lower() != "development",
        PERMANENT_SESSION_LIFETIME=timedelta(days=7),
        MAX_CONTENT_LENGTH=2 * 1024 * 1024,  # 2 MB por petición (backups incluidos)
        # Coach (proveedor compatible con OpenAI)
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY", ""),
        OPENAI_MODEL=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        OPENAI_BASE_URL=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        COACH_NAME=(os.getenv("COACH_NAME") or "").strip() or "Coach",
        COACH_TIMEOUT=float(os.getenv("COACH_TIMEOUT", "60")),
        # Puerta beta (texto plano, sin valor criptográfico)
        BETA_CODE=os.getenv("BETA_CODE", "FORCE3BETA"),
    )
    app.config.update(overrides)

    # Inicializa extensiones
    db.init_app(app)
    migrate.init_app(app, db)

    _configure_logging(app)

    # ---------------------------------------------------------
    # MODELOS (importar para que Flask-Migrate los detecte)
    # ---------------------------------------------------------
    try:
        from force3.models.storage import StoredDocument  # noqa: F401
    except Exception as e:
        app.logger.warning(f"[init] modelo storage: {e}")

    # Estado de la app: carga por petición
    try:
        from force3.services.app_state import init_app as init_state
        init_state(app)
    except Exception as e:
        app.logger.warning(f"[init] app_state: {e}")

    # ---------------------------------------------------------
    # BLUEPRINTS
    # ---------------------------------------------------------
    try:
        from force3.routes.onboarding_api import onboarding_bp
        app.register_blueprint(onboarding_bp)
    except Exception as e:
        app.logger.warning(f"[init] onboarding_bp: {e}")

    # Coach IA (cuestionario + plan)
    try:
        from force3.routes.coach_api import coach_bp
        app.register_blueprint(coach_bp)
    except Exception as e:
        app.logger.warning(f"[init] coach_bp: {e}")

    # Registro de entrenos (fuerza / carrera / bienestar)
    try:
        from force3.routes.logs_api import logs_bp
        app.register_blueprint(logs_bp)
    except Exception as e:
        app.logger.warning(f"[init] logs_bp: {e}")

    # Checklist de hoy
    try:
        from force3.routes.today_api import today_bp
        app.register_blueprint(today_bp)
    except Exception as e:
        app.logger.warning(f"[init] today_bp: {e}")

    # Plan de 16 semanas, versiones y notas
    try:
        from force3.routes.plan_api import plan_bp
        app.register_blueprint(plan_bp)
    except Exception as e:
        app.logger.warning(f"[init] plan_bp: {e}")

    # Backup / reset / ajustes
    try:
        from force3.routes.state_api import state_bp
        app.register_blueprint(state_bp)
    except Exception as e:
        app.logger.warning(f"[init] state_bp: {e}")

    # ---------------------------------------------------------
    # CLI (backup del estado, plan en markdown)
    # ---------------------------------------------------------
    try:
        from force3.cli import register_cli
        register_cli(app)
    except Exception as e:
        app.logger.warning(f"[init] CLI: {e}")

    # ---------------------------------------------------------
    # Healthcheck y manejo de errores JSON (básico)
    # ---------------------------------------------------------
    @app.get("/healthz")
    def _healthz():
        return {"status": "ok"}, 200

    @app.errorhandler(400)
    @app.errorhandler(401)
    @app.errorhandler(403)
    @app.errorhandler(404)
    @app.errorhandler(405)
    @app.errorhandler(409)
    @app.errorhandler(500)
    def _http_errors(err):
        # Si la petición es JSON, devolvemos JSON consistente
        if request.is_json or request.path.startswith("/api/"):
            code = getattr(err, "code", 500) or 500
            return jsonify(error_code="http_error", message=str(err)), code
        return err

    return app
