"""End-to-end repository lifecycle against real git on a temporary gear."""

import stat
import subprocess
import time

import pytest

from gear_repository.error_handling import SourceFetchFailedError
from gear_repository.git.repository import ApplicationRepository


def rev_parse(repo, ref="HEAD"):
    return subprocess.run(
        ["git", "rev-parse", ref], cwd=repo, check=True, capture_output=True, text=True
    ).stdout.strip()


class TestTemplateLifecycle:
    def test_template_to_deploy(self, repository, container_dir, git_repo_factory):
        git_repo_factory.create_template_tree(
            container_dir / "php" / "template",
            {"index.html": "<h1>Hello</h1>\n"},
        )

        template = repository.populate_from_cartridge("php")

        assert template == container_dir / "php" / "template"
        assert repository.exists()
        assert not (container_dir / "git" / "template").exists()
        assert (repository.path / "HEAD").exists()

        repository.deploy()

        deployed = container_dir / "app-root" / "runtime" / "repo" / "index.html"
        assert deployed.read_text() == "<h1>Hello</h1>\n"
        assert repository.head_commit() == rev_parse(repository.path)

    def test_hooks_installed(self, repository, container_dir, git_repo_factory, node_config):
        git_repo_factory.create_template_tree(container_dir / "php" / "template")
        repository.populate_from_cartridge("php")

        for name in ("pre-receive", "post-receive"):
            hook = repository.path / "hooks" / name
            info = hook.stat()
            assert info.st_mode & stat.S_IXUSR
            assert info.st_uid == node_config.platform_uid
        assert (container_dir / ".gitconfig").read_text().startswith("[user]\n")

    def test_second_populate_is_noop(self, repository, container_dir, git_repo_factory, snapshot):
        git_repo_factory.create_template_tree(container_dir / "php" / "template")
        repository.populate_from_cartridge("php")
        before = snapshot(repository.path)

        (container_dir / "php" / "template" / "extra.txt").write_text("new")
        assert repository.populate_from_cartridge("php") is None

        assert snapshot(repository.path) == before

    def test_bare_template_is_copied(self, repository, container_dir, git_repo_factory):
        git_repo_factory.create_bare_template(
            container_dir / "php" / "usr" / "template.git", {"app.py": "print('hi')\n"}
        )

        repository.populate_from_cartridge("php")
        repository.deploy()

        assert (repository.target_dir / "app.py").read_text() == "print('hi')\n"


class TestDeploy:
    def test_redeploy_leaves_exactly_head(self, repository, container_dir, git_repo_factory):
        source = git_repo_factory.create_source_repo(
            container_dir.parent / "source", {"index.php": "v1", "old.php": "gone soon"}
        )
        repository.populate_from_url("php", f"file://{source}")
        repository.deploy()
        target = repository.target_dir
        (target / ".stale").write_text("seeded")
        (target / "seeded-dir").mkdir()

        git_repo_factory.commit_file(source, "index.php", "v2")
        git_repo_factory.remove_file(source, "old.php")
        git_repo_factory.fetch_into(repository.path, source)
        repository.deploy()

        assert sorted(p.name for p in target.iterdir()) == ["index.php"]
        assert (target / "index.php").read_text() == "v2"
        assert repository.head_commit() == rev_parse(source)

    def test_submodules_are_deployed(self, repository, container_dir, git_repo_factory):
        lib = git_repo_factory.create_source_repo(
            container_dir.parent / "lib", {"lib.txt": "library"}
        )
        app = git_repo_factory.create_source_repo(
            container_dir.parent / "app", {"index.php": "app"}
        )
        git_repo_factory.add_submodule(app, lib, "vendor/lib")

        repository.populate_from_url("php", f"file://{app}")
        with open(container_dir / ".gitconfig", "a") as f:
            f.write('[protocol "file"]\n  allow = always\n')

        repository.deploy()

        target = repository.target_dir
        assert (target / "index.php").read_text() == "app"
        assert (target / "vendor" / "lib" / "lib.txt").read_text() == "library"

        cache = container_dir / ".tmp" / "git_cache"
        deadline = time.monotonic() + 10
        while cache.exists() and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not cache.exists()


class TestUrlFailures:
    def test_unreachable_source(self, repository, container_dir):
        with pytest.raises(SourceFetchFailedError) as exc_info:
            repository.populate_from_url("php", f"file://{container_dir.parent}/missing.git")

        assert exc_info.value.code == 131
        assert exc_info.value.cause.exit_status != 0
        assert not repository.exists()


def test_destroy_then_exists(repository, container_dir, git_repo_factory):
    git_repo_factory.create_template_tree(container_dir / "php" / "template")
    repository.populate_from_cartridge("php")

    repository.destroy()
    repository.destroy()

    assert repository.exists() is False
    assert ApplicationRepository(repository.gear).exists() is False
