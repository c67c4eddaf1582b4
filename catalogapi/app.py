"""Flask API for the pattern and playlist catalog.

- Patterns and playlists each live in one JSON index object
  (``patterns.json``, ``playlists.json``) in a get/put object store, newest
  entry first.
- Pattern uploads also carry a data blob and a PNG thumbnail, stored as
  separate objects keyed by the pattern's ``uuid``.
- Every catalog route requires a bearer token issued by ``POST /auth``; only
  tokens whose embedded user record is flagged ``is_admin`` may create
  entries.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from flask import Blueprint, Flask, Response, jsonify, render_template, request
from flask_cors import CORS
from flask_talisman import Talisman
from pydantic import ValidationError

from catalogcore.catalog import CollectionKind, load_users
from catalogcore.config import ServiceConfig, load_service_config
from catalogcore.storage import (
    CollectionNotFound,
    DataWriteError,
    DecodeError,
    EntryNotFound,
    FileObjectStore,
    ObjectStore,
    StoreError,
    StoreWriteError,
    ThumbnailWriteError,
)

from .auth import admin_required, bearer_required, find_user, password_matches
from .models import AuthRequestModel, EntryModel, PatternUploadModel
from .state import EXTENSION_KEY, CatalogState, get_state

BASE_DIR = Path(__file__).resolve().parent
CACHE_FOREVER = "max-age=31536000"
POWERED_BY = "catalog-service"

logger = logging.getLogger(__name__)

bp = Blueprint("catalog", __name__)


def _validation_error(err: ValidationError):
    details = err.errors(include_url=False, include_context=False, include_input=False)
    return jsonify({"error": details}), 400


def _store_write_error(exc: StoreWriteError):
    if isinstance(exc, DataWriteError):
        message = "Couldn't store pattern!"
    elif isinstance(exc, ThumbnailWriteError):
        message = "Couldn't store pattern thumbnail!"
    else:
        message = "Store write error"
    logger.warning("%s (%s)", message, exc)
    return jsonify({"error": message}), 500


def _cached(resp: Response) -> Response:
    resp.headers["Cache-Control"] = CACHE_FOREVER
    return resp


# ---------------------------------------------------------------------------
# Routes: Playlists
# ---------------------------------------------------------------------------
@bp.route("/playlists", methods=["POST"])
@admin_required
def create_playlist():
    try:
        playlist = EntryModel.model_validate(request.get_json(silent=True))
    except ValidationError as err:
        return _validation_error(err)
    try:
        uuid = get_state().service.create_playlist(playlist.model_dump())
    except StoreWriteError as exc:
        return _store_write_error(exc)
    return jsonify({"uuid": uuid})


@bp.route("/playlists", methods=["GET"])
@bearer_required
def list_playlists():
    return jsonify(get_state().service.list_entries(CollectionKind.PLAYLISTS))


@bp.route("/playlists/<uuid>", methods=["GET"])
@bearer_required
def get_playlist(uuid: str):
    try:
        item = get_state().service.get_entry(CollectionKind.PLAYLISTS, uuid)
    except EntryNotFound:
        return jsonify({"error": "Not Found"}), 404
    return _cached(jsonify(item))


# ---------------------------------------------------------------------------
# Routes: Patterns
# ---------------------------------------------------------------------------
@bp.route("/patterns", methods=["POST"])
@admin_required
def create_pattern():
    try:
        upload = PatternUploadModel.model_validate(request.get_json(silent=True))
    except ValidationError as err:
        return _validation_error(err)
    try:
        uuid = get_state().service.create_pattern(
            upload.pattern.model_dump(),
            upload.pattern_data.encode("utf-8"),
            upload.thumb_data,
        )
    except StoreWriteError as exc:
        return _store_write_error(exc)
    return jsonify({"uuid": uuid})


@bp.route("/patterns", methods=["GET"])
@bearer_required
def list_patterns():
    return jsonify(get_state().service.list_entries(CollectionKind.PATTERNS))


@bp.route("/patterns/<uuid>", methods=["GET"])
@bearer_required
def get_pattern(uuid: str):
    try:
        item = get_state().service.get_entry(CollectionKind.PATTERNS, uuid)
    except EntryNotFound:
        return jsonify({"error": "Not Found"}), 404
    return _cached(jsonify(item))


@bp.route("/patterns/<uuid>/data", methods=["GET"])
@bearer_required
def get_pattern_data(uuid: str):
    try:
        blob = get_state().service.get_payload(uuid)
    except EntryNotFound:
        return jsonify({"error": "Not Found"}), 404
    text = blob.decode("utf-8", errors="replace")
    return _cached(Response(text, mimetype="text/plain"))


@bp.route("/patterns/<uuid>/thumb.png", methods=["GET"])
@bearer_required
def get_pattern_thumbnail(uuid: str):
    try:
        blob = get_state().service.get_thumbnail(uuid)
    except EntryNotFound:
        return jsonify({"error": "Not Found"}), 404
    return _cached(Response(blob, mimetype="image/png"))


# ---------------------------------------------------------------------------
# Routes: Auth
# ---------------------------------------------------------------------------
@bp.route("/auth", methods=["POST"])
def issue_token():
    try:
        creds = AuthRequestModel.model_validate(request.get_json(silent=True) or {})
    except ValidationError:
        return jsonify({"error": "Malformed request"}), 400
    if not creds.email or not creds.password:
        return jsonify({"error": "Malformed request"}), 400

    state = get_state()
    try:
        users = load_users(state.store)
    except StoreError as exc:
        logger.warning("Users database unavailable: %s", exc)
        return jsonify({"error": "Couldn't retrieve users database!"}), 400

    user = find_user(users, creds.email)
    if not user or not password_matches(user, creds.password):
        return jsonify({"error": "Invalid email or password"}), 401

    return jsonify({"token": state.signer.issue(user)})


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
def collection_unavailable(exc: CollectionNotFound):
    logger.error("Collection unavailable: %s", exc)
    return jsonify({"error": "Collection unavailable"}), 503


def collection_corrupt(exc: DecodeError):
    logger.error("Collection unreadable: %s", exc)
    return jsonify({"error": "Collection unreadable"}), 500


def page_not_found(_exc):
    return render_template("not_found.html"), 404


def secure_headers(resp):
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Powered-By"] = POWERED_BY
    return resp


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(config: ServiceConfig | None = None, store: ObjectStore | None = None) -> Flask:
    """Build the Flask app around an explicit config and store handle."""

    config = config or load_service_config(BASE_DIR)
    store = store if store is not None else FileObjectStore(config.data_dir)

    app = Flask(__name__)
    app.config.update(SECRET_KEY=config.secret_key)
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = CatalogState.build(config, store)

    CORS(app, resources={r"/*": {"origins": list(config.allowed_origins)}})
    Talisman(app, content_security_policy=None, force_https=config.force_tls)

    app.register_blueprint(bp)
    app.register_error_handler(CollectionNotFound, collection_unavailable)
    app.register_error_handler(DecodeError, collection_corrupt)
    app.register_error_handler(404, page_not_found)
    app.after_request(secure_headers)

    @app.cli.command("provision")
    def provision_command():
        """Create empty indexes for collections that do not exist yet."""

        catalog = get_state().service.catalog
        for kind in CollectionKind:
            created = catalog.provision(kind)
            status = "created" if created else "exists"
            click.echo(f"{kind.key}: {status}")

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    service_config = load_service_config(BASE_DIR)
    create_app(service_config).run(host=service_config.host, port=service_config.port)
