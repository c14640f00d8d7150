"""Tests for the submodule cache coordinator."""

import pytest

from gear_repository.configuration import RepositoryConfig
from gear_repository.error_handling import GearEnvironmentError, ShellExecutionError
from gear_repository.git.cache import SubmoduleCache


class TestLocation:
    def test_cache_lives_under_gear_tmp_dir(self, temp_dir):
        cache = SubmoduleCache.for_env({"OPENSHIFT_TMP_DIR": str(temp_dir)}, RepositoryConfig())
        assert cache.path == temp_dir / "git_cache"

    def test_configured_variable_and_name(self, temp_dir):
        config = RepositoryConfig(tmp_dir_variable="GEAR_TMP", submodule_cache_name="modules")
        cache = SubmoduleCache.for_env({"GEAR_TMP": str(temp_dir)}, config)
        assert cache.path == temp_dir / "modules"

    def test_missing_tmp_dir_raises(self):
        with pytest.raises(GearEnvironmentError, match="OPENSHIFT_TMP_DIR") as exc_info:
            SubmoduleCache.for_env({}, RepositoryConfig())
        assert exc_info.value.code == 134
        assert exc_info.value.variable == "OPENSHIFT_TMP_DIR"

    def test_empty_tmp_dir_raises(self):
        with pytest.raises(GearEnvironmentError):
            SubmoduleCache.for_env({"OPENSHIFT_TMP_DIR": ""}, RepositoryConfig())


class TestPrepare:
    def test_creates_empty_directory(self, temp_dir):
        cache = SubmoduleCache(temp_dir / "git_cache")
        path = cache.prepare()

        assert path.is_dir()
        assert list(path.iterdir()) == []

    def test_removes_leftovers_from_failed_run(self, temp_dir):
        cache = SubmoduleCache(temp_dir / "git_cache")
        (cache.path / "stale" / "nested").mkdir(parents=True)
        (cache.path / ".hidden").write_text("old")

        cache.prepare()

        assert cache.path.is_dir()
        assert list(cache.path.iterdir()) == []

    def test_replaces_stray_file(self, temp_dir):
        cache = SubmoduleCache(temp_dir / "git_cache")
        cache.path.write_text("not a directory")

        cache.prepare()

        assert cache.path.is_dir()


class TestScheduledRemoval:
    def test_runs_rm_in_container_context(self, temp_dir, recording_gear):
        cache = SubmoduleCache(temp_dir / "git_cache")

        thread = cache.schedule_removal(recording_gear)
        thread.join(timeout=5)

        assert thread.daemon
        assert recording_gear.calls == [
            ("container", f"/bin/rm -rf {cache.path}", {"chdir": None, "env": None, "expected_exitstatus": None})
        ]

    def test_failure_is_logged_not_raised(self, temp_dir, recording_gear, caplog):
        cache = SubmoduleCache(temp_dir / "git_cache")
        recording_gear.failures["rm -rf"] = ShellExecutionError("denied", 1, "", "denied")

        thread = cache.schedule_removal(recording_gear)
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert "Submodule cache cleanup failed" in caplog.text
