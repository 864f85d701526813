"""End-to-end runs of the advisor with fake sources."""

from dataclasses import replace

import pytest

from tests.fakes import FakeConda, FakePip, FakeRegistryClient, ScriptedPrompt

from update_advisor import cli
from update_advisor import config as config_module
from update_advisor.cache import FileMetadataCache, InMemoryMetadataCache
from update_advisor.reporting import WarningRegistry


@pytest.fixture(autouse=True)
def offline_registry(monkeypatch):
    monkeypatch.setattr(cli, "RegistryClient", lambda *args, **kwargs: FakeRegistryClient())


def advise(config, conda, pip, answers=()):
    output = []
    status = cli.run(
        config,
        InMemoryMetadataCache(),
        WarningRegistry(),
        conda,
        pip,
        prompt=ScriptedPrompt(answers),
        emit=output.append,
    )
    return status, output


def test_everything_up_to_date(config):
    status, output = advise(config, FakeConda(), FakePip())
    assert status == 0
    assert "✅ All packages are up to date" in output


def test_all_sources_failing_is_an_error(config):
    status, output = advise(config, FakeConda(fail=True), FakePip(fail=True))
    assert status == 1
    assert any("No updates could be determined" in line for line in output)


def test_one_failing_source_still_reports_the_other(config):
    pip = FakePip(outdated=[("requests", "2.31.0", "2.31.1")])
    status, _ = advise(config, FakeConda(fail=True), pip, answers=["y"])
    assert status == 0
    assert pip.installs == [("requests", "2.31.1")]


def test_approve_and_install(config):
    conda = FakeConda(installed=[("numpy", "1.26.0")], latest={"numpy": "1.26.4"})
    pip = FakePip(outdated=[("requests", "2.31.0", "2.32.0")])

    status, output = advise(config, conda, pip, answers=["y", "n"])

    assert status == 0
    assert conda.installs == [("numpy", "1.26.4")]
    assert pip.installs == []
    assert any("Skipped by choice: 1" in line for line in output)


def test_quit_makes_no_changes(config):
    conda = FakeConda(installed=[("numpy", "1.26.0")], latest={"numpy": "1.26.4"})
    pip = FakePip(outdated=[("requests", "2.31.0", "2.32.0")])

    status, output = advise(config, conda, pip, answers=["y", "q"])

    assert status == 0
    assert conda.installs == [] and pip.installs == []
    assert "🛑 Update cancelled by user. No changes were made." in output


def test_install_failure_sets_exit_status(auto_config):
    pip = FakePip(
        outdated=[("requests", "2.31.0", "2.32.0")],
        install_results={"requests": (False, "No matching distribution found")},
    )
    status, output = advise(auto_config, None, pip)
    assert status == 1
    assert any("package not found" in line for line in output)


def test_batch_mode(auto_config):
    pip = FakePip(outdated=[("a", "1.0.0", "1.0.1"), ("b", "1.0.0", "2.0.0")])
    status, output = advise(replace(auto_config, batch=True), None, pip)
    assert status == 0
    assert pip.installs == [("a", "1.0.1"), ("b", "2.0.0")]
    assert any(line.startswith("Risk overview:") for line in output)


def test_main_reports_usage_error(monkeypatch, capsys):
    monkeypatch.delenv("CONDA_DEFAULT_ENV", raising=False)
    assert cli.main([]) == 1
    assert "--name" in capsys.readouterr().err


class InterruptedConda(FakeConda):
    def list_installed(self):
        raise KeyboardInterrupt


def test_interrupt_prints_rollback_guidance_and_removes_temp_cache(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("CONDA_DEFAULT_ENV", "ml")
    monkeypatch.setattr(cli, "build_sources", lambda config, warnings: (InterruptedConda(), None))
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    caches = []

    def unusable_cache_root(env_name, ttl):
        cache = FileMetadataCache(env_name, ttl=ttl, root=blocker / "cache")
        caches.append(cache)
        return cache

    monkeypatch.setattr(cli, "FileMetadataCache", unusable_cache_root)

    assert cli.main(["--conda-only", "--tools-dir", str(tmp_path)]) == 130

    out = capsys.readouterr().out
    assert "Interrupted by user" in out
    assert "conda list --revisions" in out
    assert caches[0].ephemeral
    assert not caches[0].directory.exists()


def test_missing_conda_is_reported_and_dropped(config, monkeypatch, capsys):
    monkeypatch.setattr(
        config_module.shutil, "which",
        lambda tool: None if tool == "conda" else f"/usr/bin/{tool}",
    )

    conda, pip = cli.build_sources(config, WarningRegistry(), environ={"CONDA_DEFAULT_ENV": "ml"})

    assert conda is None
    assert pip.pip_command == ["python", "-m", "pip"]
    err = capsys.readouterr().err
    assert "Required command 'conda' not found" in err
    assert "miniconda" in err


def test_found_conda_is_used_by_path(config, monkeypatch):
    monkeypatch.setattr(config_module.shutil, "which", lambda tool: f"/opt/bin/{tool}")
    conda, pip = cli.build_sources(config, WarningRegistry(), environ={"CONDA_DEFAULT_ENV": "other"})
    assert conda.executable == "/opt/bin/conda"
    assert pip.pip_command[:4] == ["conda", "run", "--name", "ml"]
