import logging

from invoicedesk import config


def test_data_path_prefers_explicit_dir(tmp_path):
    assert config.data_path(config.DOCUMENTS_JSON, tmp_path) == tmp_path / "documents.json"
    assert config.data_path(config.PAYMENTS_JSON) == config.DATA_DIR / "payments.json"


def test_configure_logging_reads_env(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setenv("INVOICEDESK_LOG_LEVEL", "debug")
    config.configure_logging()
    assert root.level == logging.DEBUG


def test_configure_logging_explicit_level(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    config.configure_logging("warning")
    assert root.level == logging.WARNING
