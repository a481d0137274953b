from flask import Flask, jsonify
from prometheus_flask_exporter import PrometheusMetrics
from flask_cors import CORS
import os

from .logging_setup import setup_logging
from .routes import health, metadata_routes, minting_status_routes, transaction_routes, faucet_routes
from .config import DevelopmentConfig, ProductionConfig, TestingConfig


def create_app(config_name: str = "development", start_background: bool = True):
    app = Flask(__name__)

    config_map = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }
    app.config.from_object(config_map.get(config_name.lower(), DevelopmentConfig))
    app.url_map.strict_slashes = False

    setup_logging(app)

    # CORS desde variable de entorno CORS_ORIGINS
    # - no seteada o '*'  -> permite todos los orígenes
    # - "http://localhost:3000,http://127.0.0.1:3000" -> sólo esos
    cors_origin = os.getenv("CORS_ORIGINS", "*").strip()
    cors_common_kwargs = dict(
        supports_credentials=False,
        methods=["GET", "POST", "PUT", "PATCH", "OPTIONS", "HEAD"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID", "Accept", "Origin"],
        expose_headers=["Content-Disposition"],
    )
    if cors_origin in ("*", ""):
        CORS(app, resources={r"/*": {"origins": "*"}}, **cors_common_kwargs)
    else:
        origins_list = [o.strip() for o in cors_origin.split(",") if o.strip()]
        CORS(app, resources={r"/*": {"origins": origins_list}}, **cors_common_kwargs)

    # Importar models aquí (ya con app creada)
    from .models import init_app as init_models
    init_models(app)

    from .extensions import init_app as init_extensions, start_stats_init
    init_extensions(app)

    # Blueprints
    app.register_blueprint(health.bp)
    app.register_blueprint(metadata_routes.bp, url_prefix="/api/metadata")
    app.register_blueprint(minting_status_routes.bp, url_prefix="/api/minting-status")
    app.register_blueprint(transaction_routes.bp, url_prefix="/api/transactions")
    app.register_blueprint(faucet_routes.bp, url_prefix="/api/faucet")

    @app.errorhandler(413)
    def too_large(_e):
        limit_mb = app.config["MAX_UPLOAD_BYTES"] / (1024 * 1024)
        return jsonify({"ok": False, "error": f"File too large (max {limit_mb:g} MB)"}), 413

    @app.errorhandler(429)
    def too_many_requests(e):
        return jsonify({"ok": False, "error": e.description}), 429

    @app.errorhandler(500)
    def internal_error(_e):
        return jsonify({"ok": False, "error": "Internal server error"}), 500

    # Métricas
    metrics = PrometheusMetrics(app, path="/metrics")
    metrics.info("app_info", "NFT Mint API", version="1.0.0")

    # Estadísticas: lectura única de la cadena + scan de metadata, en segundo plano
    if start_background and app.config.get("MINTING_STATS_AUTO_INIT"):
        start_stats_init(app)

    return app
