"""
Tests for the install use case — the full pipeline with a mock engine.
"""

import threading
from contextlib import contextmanager
from pathlib import Path

import pytest

from conftest import ScriptedPrompter, make_manifest, write_recipes
from nrcli.adapters.mock import MockTaskEngine
from nrcli.core.config.credentials import CredentialStore
from nrcli.core.errors import DiscoveryError, PipelineCancelled, RecipeLoadError
from nrcli.core.recipes.resolver import VariableResolver
from nrcli.core.use_cases.install import InstallReport, RecipeOutcome, run_install

RECIPES = """\
    - name: nginx
      processMatch: [nginx]
      install:
        - name: install
          cmds: ["echo install nginx"]
        - name: configure
          cmds: ["echo {{.NR_LICENSE_KEY}}"]
    - name: mysql
      processMatch: [mysqld]
      inputVars:
        - name: DB_USER
          prompt: Database user
          default: root
      install:
        - name: install
          cmds: ["echo install mysql as {{.DB_USER}}"]
    - name: redis
      processMatch: ["glob:*redis-server*"]
      install:
        - name: install
          cmds: ["echo install redis"]
    - name: infra-agent
      install:
        - name: install
          cmds: ["echo agent"]
"""

HOST = make_manifest(
    "nginx: master process /usr/sbin/nginx",
    "/usr/sbin/mysqld --user=mysql",
    "/usr/bin/redis-server 127.0.0.1:6379",
)


@pytest.fixture
def recipes_file(tmp_path: Path) -> Path:
    return write_recipes(tmp_path / "recipes", "all.yml", RECIPES)


def _run(recipes_file, engine, credentials, resolver=None, manifest=HOST, **kwargs) -> InstallReport:
    return run_install(
        engine=engine,
        credentials=credentials,
        resolver=resolver or VariableResolver(environ={"DB_USER": "admin"}),
        recipe_source=recipes_file,
        manifest_builder=lambda: manifest,
        **kwargs,
    )


class TestRunInstall:
    def test_installs_matching_recipes_in_order(self, recipes_file, mock_engine, credentials):
        report = _run(recipes_file, mock_engine, credentials)
        assert report.candidates == ["nginx", "mysql", "redis"]
        assert [o.status for o in report.outcomes] == ["installed"] * 3
        assert report.status == "ok"
        assert mock_engine.steps_run[:2] == [("nginx", "install"), ("nginx", "configure")]

    def test_license_key_reaches_engine(self, recipes_file, mock_engine, credentials):
        _run(recipes_file, mock_engine, credentials, names=["nginx"])
        configure = mock_engine.call_log[1]
        assert configure.step.body["cmds"] == ["echo LK-TEST-0001"]

    def test_failure_is_isolated(self, recipes_file, mock_engine, credentials):
        mock_engine.set_failure("install", "exit status 1", recipe="mysql")
        report = _run(recipes_file, mock_engine, credentials)
        by_name = {o.recipe: o for o in report.outcomes}
        assert by_name["nginx"].status == "installed"
        assert by_name["mysql"].status == "failed"
        assert by_name["mysql"].failed_step == "install"
        assert "exit status 1" in by_name["mysql"].reason
        assert by_name["redis"].status == "installed"
        assert report.status == "partial"

    def test_unresolved_variable_fails_only_that_recipe(self, recipes_file, mock_engine, credentials):
        resolver = VariableResolver(ScriptedPrompter(), interactive=False, environ={})
        report = _run(recipes_file, mock_engine, credentials, resolver=resolver)
        by_name = {o.recipe: o for o in report.outcomes}
        assert by_name["mysql"].status == "failed"
        assert "DB_USER" in by_name["mysql"].reason
        assert ("mysql", "install") not in mock_engine.steps_run
        assert by_name["nginx"].status == "installed"

    def test_missing_license_key_fails_every_recipe(self, recipes_file, mock_engine, config_dir):
        report = _run(recipes_file, mock_engine, CredentialStore(config_dir))
        assert report.status == "failed"
        assert all("profile" in o.reason for o in report.outcomes)
        assert mock_engine.call_count == 0

    def test_explicit_names_bypass_matching(self, recipes_file, mock_engine, credentials):
        report = _run(recipes_file, mock_engine, credentials, names=["infra-agent", "unknown", "infra-agent"])
        assert report.candidates == ["infra-agent"]
        assert [(o.recipe, o.status) for o in report.outcomes] == [
            ("unknown", "failed"),
            ("infra-agent", "installed"),
        ]
        assert "not found" in report.outcomes[0].reason

    def test_process_filter(self, recipes_file, mock_engine, credentials):
        report = _run(recipes_file, mock_engine, credentials, process_filters=["redis"])
        assert report.candidates == ["redis"]
        assert report.manifest.process_count == 1

    def test_nothing_matches(self, recipes_file, mock_engine, credentials):
        report = _run(recipes_file, mock_engine, credentials, manifest=make_manifest("bash"))
        assert report.status == "empty"
        assert mock_engine.call_count == 0

    def test_dry_run(self, recipes_file, mock_engine, credentials):
        report = _run(recipes_file, mock_engine, credentials, dry_run=True)
        assert [o.status for o in report.outcomes] == ["skipped"] * 3
        assert mock_engine.call_count == 0

    def test_parallel_keeps_candidate_order(self, recipes_file, mock_engine, credentials):
        mock_engine.set_failure("install", recipe="nginx")
        report = _run(recipes_file, mock_engine, credentials, max_workers=3)
        assert [o.recipe for o in report.outcomes] == ["nginx", "mysql", "redis"]
        assert report.failed == 1
        assert report.installed == 2

    def test_credential_handle_released(self, recipes_file, mock_engine, credentials, monkeypatch):
        handles = []
        original = credentials.acquire

        @contextmanager
        def spy(profile=None):
            with original(profile) as handle:
                handles.append(handle)
                yield handle

        monkeypatch.setattr(credentials, "acquire", spy)
        _run(recipes_file, mock_engine, credentials)
        assert len(handles) == 1
        assert handles[0].released

    def test_discovery_error_is_fatal(self, recipes_file, mock_engine, credentials):
        def broken():
            raise DiscoveryError("no /proc")

        with pytest.raises(DiscoveryError):
            run_install(
                engine=mock_engine,
                credentials=credentials,
                resolver=VariableResolver(environ={}),
                recipe_source=recipes_file,
                manifest_builder=broken,
            )

    def test_broken_primary_source_is_fatal(self, tmp_path, mock_engine, credentials):
        bad = write_recipes(tmp_path, "bad.yml", "- name: [\n")
        with pytest.raises(RecipeLoadError):
            _run(bad, mock_engine, credentials)

    def test_taskfile_error_fails_only_that_recipe(self, tmp_path, mock_engine, credentials):
        source = write_recipes(tmp_path / "scoped", "scoped.yml", """\
            - name: newrelic/nginx
              processMatch: [nginx]
              install:
                - name: install
                  cmds: ["echo scoped"]
            - name: redis
              processMatch: [nginx]
              install:
                - name: install
                  cmds: ["echo redis"]
        """)
        report = _run(source, mock_engine, credentials, work_dir=tmp_path)
        assert [(o.recipe, o.status) for o in report.outcomes] == [
            ("newrelic/nginx", "installed"),
            ("redis", "installed"),
        ]

    def test_unwritable_work_dir_is_recorded_per_recipe(self, recipes_file, mock_engine, credentials, tmp_path):
        report = _run(recipes_file, mock_engine, credentials, work_dir=tmp_path / "missing")
        assert [o.status for o in report.outcomes] == ["failed"] * 3
        assert all(o.failed_step == "<render>" for o in report.outcomes)
        assert mock_engine.call_count == 0


class TestCancellation:
    def test_cancel_stops_run_and_keeps_outcomes(self, recipes_file, credentials):
        engine = MockTaskEngine()
        engine.set_cancel("configure")
        event = threading.Event()
        with pytest.raises(PipelineCancelled) as exc:
            _run(recipes_file, engine, credentials, cancel_event=event)
        assert event.is_set()
        assert exc.value.outcomes == []
        assert ("mysql", "install") not in engine.steps_run

    def test_preset_event_runs_nothing(self, recipes_file, mock_engine, credentials):
        event = threading.Event()
        event.set()
        with pytest.raises(PipelineCancelled):
            _run(recipes_file, mock_engine, credentials, cancel_event=event)
        assert mock_engine.call_count == 0


class TestInstallReport:
    def test_status_values(self):
        assert InstallReport().status == "empty"
        assert InstallReport(outcomes=[RecipeOutcome("a")]).status == "ok"
        assert InstallReport(outcomes=[
            RecipeOutcome("a"), RecipeOutcome("b", status="failed"),
        ]).status == "partial"
        assert InstallReport(outcomes=[RecipeOutcome("b", status="failed")]).status == "failed"

    def test_to_dict(self):
        report = InstallReport(engine="mock", outcomes=[RecipeOutcome("a", status="skipped")])
        data = report.to_dict()
        assert data["engine"] == "mock"
        assert data["skipped"] == 1
        assert data["outcomes"][0]["recipe"] == "a"
