import pytest
import yaml

from pitstop_app.core.config import DEFAULT_THRESHOLDS, FeatureToggles, Settings, ThresholdConfig
from pitstop_app.core.config_store import SETTINGS_KEY, THRESHOLDS_KEY, ConfigStore, ConfigStoreError


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "pitstop.yaml")


def test_threshold_lookup_falls_back_to_default_then_constant():
    assert ThresholdConfig().for_status("In Progress") == 48
    assert ThresholdConfig({"default": 10}).for_status("Waiting") == 10
    assert ThresholdConfig({"In Progress": 0, "default": 30}).for_status("In Progress") == 30
    assert ThresholdConfig({}).for_status("Anything") == 72
    assert ThresholdConfig({"QA": 5}).for_status(None) == 72


def test_missing_file_yields_defaults(store):
    assert store.get_thresholds() == ThresholdConfig()
    assert store.get_settings() == Settings()
    assert store.export_config()["thresholds"] == DEFAULT_THRESHOLDS


def test_unreadable_file_yields_defaults(tmp_path):
    path = tmp_path / "pitstop.yaml"
    path.write_text("status-thresholds: [unclosed\n")
    store = ConfigStore(path)
    assert store.get_thresholds() == ThresholdConfig()
    assert store.get_settings() == Settings()


def test_set_threshold_for_status_keeps_others(store):
    store.set_threshold_for_status("QA", 12)
    thresholds = store.get_thresholds()
    assert thresholds.for_status("QA") == 12
    assert thresholds.for_status("In Progress") == 48

    raw = yaml.safe_load(store.path.read_text())
    assert raw[THRESHOLDS_KEY]["QA"] == 12.0


def test_reset_thresholds(store):
    store.set_thresholds({"In Progress": 1, "default": 2})
    assert store.get_thresholds().for_status("To Do") == 2
    store.reset_thresholds()
    assert store.get_thresholds() == ThresholdConfig()


def test_settings_persist(store):
    settings = Settings(
        no_human_comment_threshold_hours=48,
        comment_cooldown_hours=12,
        max_issues_per_run=10,
        active_statuses=("In Progress", "QA"),
        features=FeatureToggles(post_encouragement=True, detect_blockers=False),
    )
    store.set_settings(settings)
    assert store.get_settings() == settings
    assert yaml.safe_load(store.path.read_text())[SETTINGS_KEY]["features"]["detect_blockers"] is False


def test_export_import_round_trip(store, tmp_path):
    store.set_threshold_for_status("Waiting for Vendor", 200)
    store.set_settings(Settings(comment_cooldown_hours=6, features=FeatureToggles(detect_unassigned=False)))
    exported = store.export_config()

    other = ConfigStore(tmp_path / "other.yaml")
    other.import_config(exported)
    assert other.get_thresholds() == store.get_thresholds()
    assert other.get_settings() == store.get_settings()

    store.import_config(store.export_config())
    assert store.export_config() == exported


def test_import_leaves_absent_sections_untouched(store):
    store.set_settings(Settings(max_issues_per_run=7))
    store.import_config({"thresholds": {"default": 99}})
    assert store.get_thresholds().for_status("Anything") == 99
    assert store.get_settings().max_issues_per_run == 7


@pytest.mark.parametrize(
    "document",
    [
        ["not", "a", "mapping"],
        {"thresholds": ["In Progress", 48]},
        {"thresholds": {"In Progress": "soon"}},
        {"thresholds": {"In Progress": -1}},
        {"settings": "verbose"},
    ],
)
def test_import_rejects_malformed_documents(store, document):
    with pytest.raises(ConfigStoreError):
        store.import_config(document)
    assert not store.path.exists()


def test_write_failure_raises(tmp_path):
    store = ConfigStore(tmp_path)  # a directory cannot be written as a file
    assert store.get_thresholds() == ThresholdConfig()
    with pytest.raises(ConfigStoreError):
        store.set_threshold_for_status("QA", 1)


def test_available_statuses_lists_common_workflow():
    statuses = ConfigStore.available_statuses()
    assert "In Progress" in statuses
    assert "Blocked" in statuses
