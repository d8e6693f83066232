from collections.abc import Mapping

from flask import Flask
from flask_cors import CORS

from .config import Config
from .extensions import db
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    if isinstance(config_object, Mapping):
        app.config.from_object(Config)
        app.config.from_mapping(config_object)
    elif config_object is not None:
        app.config.from_object(config_object)
    else:
        app.config.from_object(Config)
        app.config.from_envvar("APP_SETTINGS", silent=True)

    db.init_app(app)

    origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app,
         origins=[o.strip() for o in origins.split(",")] if isinstance(origins, str) else origins,
         supports_credentials=True,
         allow_headers=["Content-Type"],
         methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    )

    register_routes(app)

    return app
