from pathlib import Path

from shark.paths import get_shark_home, logs_dir


def test_shark_home_honors_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SHARK_HOME", str(tmp_path / "home"))
    assert get_shark_home() == tmp_path / "home"
    assert logs_dir() == tmp_path / "home" / "logs"


def test_shark_home_defaults_to_user_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SHARK_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    assert get_shark_home() == tmp_path / ".shark"


def test_logs_dir_accepts_explicit_home(tmp_path: Path) -> None:
    assert logs_dir(tmp_path) == tmp_path / "logs"
