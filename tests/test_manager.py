import json
import logging

import pytest

from setup_wizard.config import Config
from setup_wizard.core.fields import Configuration, FieldType
from setup_wizard.core.store import MemoryStore
from setup_wizard.errors import ConfigurationError, UnknownConfigurationError
from setup_wizard.extensions import setup as wizard
from setup_wizard.manager import COMPLETED_FILTER, STEPS_FILTER, SetupWizard
from setup_wizard.signals import setup_completed

from conftest import DEMO


@pytest.mark.parametrize("config", [
    {"title": "No name", "steps": {"1": {}}},
    {"name": "no-steps"},
    {"name": "gaps", "steps": {"1": {}, "3": {}}},
    {"name": "bad-bound", "steps": {"1": {"n": {"type": "NumberControl", "min": "ten"}}}},
])
def test_incomplete_configurations_are_dropped(config, caplog):
    manager = SetupWizard()
    with caplog.at_level(logging.WARNING, logger="setup_wizard"):
        assert not manager.register(config)
    assert manager.configurations == {}
    assert "Dropping setup configuration" in caplog.text


def test_configuration_is_registered_once():
    manager = SetupWizard()
    assert manager.register(DEMO)
    assert not manager.register(dict(DEMO, title="Changed"))
    assert manager.get_config("demo").title == "Demo setup"


def test_configuration_is_read_only():
    config = Configuration.from_dict(DEMO)
    with pytest.raises(TypeError):
        config.steps[3] = {}
    with pytest.raises(AttributeError):
        config.title = "x"


def test_unknown_field_type_becomes_static_text():
    config = Configuration.from_dict({"name": "x", "steps": {"1": {"w": {"type": "ColorPicker"}}}})
    assert config.steps[1]["w"].type == FieldType.STATIC


def test_parse_errors_name_the_problem():
    with pytest.raises(ConfigurationError, match="numbered"):
        Configuration.from_dict({"name": "x", "steps": {"2": {}}})


def test_load_directory_skips_broken_files(tmp_path):
    (tmp_path / "demo.json").write_text(json.dumps(DEMO | {"steps": {"1": {}}}), encoding="utf-8")
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    manager = SetupWizard()
    assert manager.load_directory(str(tmp_path)) == 1
    assert list(manager.configurations) == ["demo"]


def test_bundled_configurations_load():
    manager = SetupWizard()
    assert manager.load_directory(Config.SETUP_CONFIG_DIR) == 2
    assert manager.get_config("newsletter").last_step == 2


def test_require_config_raises_for_unknown_names(app):
    with pytest.raises(UnknownConfigurationError):
        wizard.require_config("nope")


def test_steps_filter_may_return_raw_mappings(app):
    def add_step(steps, name):
        raw = {str(i): {n: f.to_dict() for n, f in fields.items()} for i, fields in steps.items()}
        raw[str(len(raw) + 1)] = {"bye": {"type": "Text", "text": "Bye"}}
        return raw

    wizard.add_filter(STEPS_FILTER, add_step)
    steps = wizard.get_setup_steps("demo")
    assert list(steps) == [1, 2, 3]
    assert steps[3]["bye"].text == "Bye"


def test_completion_policy_filter_and_signal(app):
    store = MemoryStore()
    wizard.add_filter(COMPLETED_FILTER, lambda completed, name: completed or name == "contact")
    registry = wizard.registry(store)

    received = []
    with setup_completed.connected_to(lambda sender: received.append(sender), sender="demo"):
        registry.set_completed("demo")
        registry.set_completed("demo", run_hooks=False)

    assert received == ["demo"]
    assert registry.is_completed("demo")
    assert registry.is_completed("contact")
    assert not registry.is_completed("import")


def test_disabled_wizard_counts_everything_as_completed(app):
    wizard.enabled = False
    try:
        assert wizard.registry(MemoryStore()).is_completed("demo")
    finally:
        wizard.enabled = True


def test_forward_url_comes_from_configuration(app):
    assert wizard.forward_url("contact") == "/setup/"
    assert wizard.forward_url("demo") is None


def test_skip_token_is_bound_to_the_configuration(app):
    with app.test_request_context():
        url = wizard.get_skip_url("demo", "/setup/")
    token = url.split("token=")[1].split("&")[0]
    assert wizard.check_skip_token(token, "demo")
    assert not wizard.check_skip_token(token, "contact")
    assert not wizard.check_skip_token("forged", "demo")


def test_display_escapes_the_payload(app):
    wizard.error_help = "<b>Reload</b>"
    with app.test_request_context():
        html = str(wizard.display("demo"))
    assert html.startswith('<div id="setup-wizard" data-config="')
    assert "&#34;name&#34;: &#34;demo&#34;" in html
    assert "&lt;b&gt;Reload&lt;/b&gt;" in html
    assert "/setup/skip?token=" in html


def test_assets_need_texts_and_matching_endpoint(app):
    assert wizard.should_load_assets("setup.wizard")
    wizard.display_endpoint = "settings_page"
    try:
        assert not wizard.should_load_assets("setup.wizard")
        assert wizard.should_load_assets("admin.settings_page")
    finally:
        wizard.display_endpoint = ""
