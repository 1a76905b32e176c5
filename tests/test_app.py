from __future__ import annotations

import pytest

import app


@pytest.fixture
def calls(monkeypatch):
    recorded: list[tuple] = []
    monkeypatch.setattr(app, "_run", lambda: recorded.append(("run",)))
    monkeypatch.setattr(app, "_setup", lambda: recorded.append(("config",)))
    monkeypatch.setattr(
        app,
        "_import_words",
        lambda word_file, category: recorded.append(("import-words", word_file, category)),
    )
    return recorded


def test_cli_dispatches_subcommands(calls) -> None:
    app.main([])
    app.main(["run"])
    app.main(["config"])
    app.main(["import-words", "--file", "words.txt", "--category", "custom"])

    assert calls == [
        ("run",),
        ("run",),
        ("config",),
        ("import-words", "words.txt", "custom"),
    ]


def test_cli_rejects_unknown_subcommand(calls) -> None:
    with pytest.raises(SystemExit):
        app.main(["setup"])
    assert calls == []
