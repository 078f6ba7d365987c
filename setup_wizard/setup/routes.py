import logging
from urllib.parse import urlparse

from flask import render_template, redirect, url_for, request, abort, jsonify
from flask_login import login_required, current_user
from flask_wtf.csrf import CSRFError

from . import setup_bp
from .process import ProcessRunner
from .service import SetupSessionService
from ..auth.decorators import admin_required
from ..core.fields import field_names, steps_to_dict
from ..errors import SettingsLoadError, SetupError
from ..extensions import setup
from ..models import WizardSession

logger = logging.getLogger(__name__)


def _service() -> SetupSessionService:
    return SetupSessionService(setup)


def _require_admin():
    if not current_user.is_authenticated or not current_user.is_admin():
        abort(403)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _safe_redirect_target(url: str | None) -> str:
    if url:
        parts = urlparse(url)
        if not parts.scheme and not parts.netloc and url.startswith("/") and not url.startswith("//"):
            return url
        if parts.netloc and parts.netloc == request.host:
            return url
    return url_for("setup.index")


@setup_bp.errorhandler(SetupError)
def handle_setup_error(e: SetupError):
    return jsonify(e.to_dict()), e.status_code


@setup_bp.errorhandler(CSRFError)
def handle_csrf_error(e: CSRFError):
    return jsonify({"error": e.description}), 400


@setup_bp.get("/")
@login_required
def index():
    _require_admin()
    registry = setup.registry()
    configurations = [
        {"config": config, "completed": registry.is_completed(name)}
        for name, config in sorted(setup.configurations.items())
    ]
    return render_template("setup/index.html", configurations=configurations)


@setup_bp.get("/<config_name>")
@login_required
def wizard(config_name: str):
    _require_admin()
    if setup.get_config(config_name) is None:
        abort(404)
    context = setup.script_context(config_name) if setup.should_load_assets(request.endpoint) else None
    return render_template(
        "setup/wizard.html",
        config=setup.get_config(config_name),
        container=setup.display(config_name),
        completed=setup.is_completed(config_name),
        script_context=context,
    )


@setup_bp.get("/skip")
@login_required
def skip_setup():
    _require_admin()
    config_name = request.args.get("config_name", "")
    if not setup.check_skip_token(request.args.get("token", ""), config_name):
        abort(400)

    setup.registry().set_completed(config_name, run_hooks=False)
    logger.info("Setup %s skipped by user %s", config_name, current_user.id)
    return redirect(_safe_redirect_target(request.args.get("url")))


@setup_bp.get("/v1/fields/<config_name>")
@admin_required
def get_fields(config_name: str):
    return jsonify(steps_to_dict(setup.get_setup_steps(config_name)))


@setup_bp.post("/v1/validate-field")
@admin_required
def validate_field():
    data = _json_body()
    step = data.get("step")
    field_name = data.get("field_name")
    if not step or not field_name:
        return jsonify({"error": "Missing 'step' or 'field_name'"}), 400

    try:
        step = int(step)
    except (TypeError, ValueError):
        return jsonify({"error": f"Invalid step: {step}"}), 400

    steps = setup.get_setup_steps(data.get("config_name"))
    field = steps.get(step, {}).get(field_name)
    if field is None:
        return jsonify({"error": f"Field '{field_name}' not found in step {step}"}), 404

    result = setup.field_validator().validate(field, data.get("value"))
    return jsonify({"field_name": field_name, "result": result.to_payload()})


@setup_bp.post("/v1/process")
@admin_required
def process_init():
    config = setup.require_config(_json_body().get("config_name"))
    snapshot = ProcessRunner(setup.progress()).run(config.name)
    return jsonify(snapshot.to_dict())


@setup_bp.post("/v1/get-process-info")
@admin_required
def get_process_info():
    return jsonify(setup.progress().snapshot().to_dict())


@setup_bp.post("/v1/completed")
@admin_required
def set_completed_by_request():
    config_name = _json_body().get("config_name")
    if not config_name:
        return jsonify({"error": "Missing 'config_name'"}), 400

    setup.registry().set_completed(config_name)

    forward = setup.forward_url(config_name)
    return jsonify({"forward": forward} if forward else {})


def _known_setting_names(config_name: str | None = None) -> list[str]:
    if config_name:
        return field_names(setup.get_setup_steps(config_name))
    names = []
    for name in setup.configurations:
        names.extend(n for n in field_names(setup.get_setup_steps(name)) if n not in names)
    return names


@setup_bp.route("/v1/settings", methods=["GET", "POST"])
@admin_required
def settings():
    store = setup.store()
    if request.method == "GET":
        names = _known_setting_names(request.args.get("config_name"))
        return jsonify({name: store.get(name) for name in names if name in store})

    data = _json_body()
    known = _known_setting_names()
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        return jsonify({"error": "Unknown settings", "unknown": unknown}), 400

    for name, value in data.items():
        store.set(name, value)
    return jsonify({name: store.get(name) for name in data})


def _get_session(session_id: int) -> WizardSession:
    ws = _service().get(session_id)
    if ws.user_id is not None and ws.user_id != current_user.id:
        abort(404)
    return ws


@setup_bp.post("/v1/sessions")
@admin_required
def create_session():
    svc = _service()
    ws = svc.create(_json_body().get("config_name"), user_id=current_user.id)
    session_id = ws.id
    try:
        state = svc.load(ws)
    except SettingsLoadError as e:
        return jsonify({"error": e.message, "id": session_id}), e.status_code
    return jsonify(svc.public(session_id, state)), 201


@setup_bp.get("/v1/sessions/<int:session_id>")
@admin_required
def get_session(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.state(_get_session(session_id))))


@setup_bp.post("/v1/sessions/<int:session_id>/load")
@admin_required
def load_session(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.load(_get_session(session_id))))


@setup_bp.route("/v1/sessions/<int:session_id>/fields", methods=["PATCH"])
@admin_required
def change_session_fields(session_id: int):
    svc = _service()
    data = _json_body()
    if not data:
        return jsonify({"error": "No field values given"}), 400
    return jsonify(svc.public(session_id, svc.change_fields(_get_session(session_id), data)))


@setup_bp.post("/v1/sessions/<int:session_id>/back")
@admin_required
def session_back(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.back(_get_session(session_id))))


@setup_bp.post("/v1/sessions/<int:session_id>/continue")
@admin_required
def session_continue(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.advance(_get_session(session_id))))


@setup_bp.post("/v1/sessions/<int:session_id>/process")
@admin_required
def session_process(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.run_process(_get_session(session_id))))


@setup_bp.post("/v1/sessions/<int:session_id>/progress")
@admin_required
def session_progress(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.observe_progress(_get_session(session_id))))


@setup_bp.post("/v1/sessions/<int:session_id>/finish")
@admin_required
def session_finish(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.finish(_get_session(session_id))))


@setup_bp.post("/v1/sessions/<int:session_id>/skip")
@admin_required
def session_skip(session_id: int):
    svc = _service()
    return jsonify(svc.public(session_id, svc.skip(_get_session(session_id))))
