"""Flask application factory for the cliptrim web UI."""

from flask import Flask, jsonify

from cliptrim.engine import TranscodeEngine
from cliptrim.errors import FileTooLargeError
from cliptrim.manifest import EncodeSettings, MiB, TrimSettings


def create_app(
    engine: TranscodeEngine | None = None,
    settings: TrimSettings | None = None,
    encode: EncodeSettings | None = None,
) -> Flask:
    app = Flask(__name__)
    app.config["ENGINE"] = engine
    app.config["TRIM_SETTINGS"] = settings or TrimSettings()
    app.config["ENCODE_SETTINGS"] = encode or EncodeSettings()
    # Room for multipart overhead; the validator enforces the real limit.
    app.config["MAX_CONTENT_LENGTH"] = app.config["TRIM_SETTINGS"].max_size_bytes + MiB

    from cliptrim.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": FileTooLargeError.user_message}), 413

    return app
