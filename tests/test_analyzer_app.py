import json
from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

APP_PATH = str(Path(__file__).resolve().parent.parent / "analyzer_app.py")


@pytest.fixture
def app_dir(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _run_app() -> AppTest:
    at = AppTest.from_file(APP_PATH)
    at.run(timeout=30)
    assert not at.exception
    return at


def test_advanced_fields_hidden_by_default(app_dir):
    at = _run_app()

    assert at.toggle(key="show_advanced").value is False
    assert len(at.number_input) == 5


def test_show_advanced_toggle_reveals_fields_and_is_saved(app_dir):
    at = _run_app()

    at.toggle(key="show_advanced").set_value(True).run(timeout=30)
    assert len(at.number_input) == 8

    at.button(key="save_settings").click().run(timeout=30)
    local = json.loads((app_dir / "config" / "local_settings.json").read_text(encoding="utf-8"))
    assert local["show_advanced"] is True

    reopened = _run_app()
    assert reopened.toggle(key="show_advanced").value is True
    assert len(reopened.number_input) == 8


def test_analyze_button_renders_metric_cards(app_dir):
    at = _run_app()

    at.button(key="analyze").click().run(timeout=30)

    assert not at.error
    assert len(at.metric) == 17 + 6
