"""Unit tests for sanityfile.py and validation.py - Sanityfile handling."""

import shutil
import subprocess
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sanityfile import (
    HerokuTarget,
    SanityfileError,
    find_sanity_dirs,
    load_sanityfile,
    parse_sanityfile,
)
from validation import validate_sanityfile

FULL = """
heroku:
  app: my-app
  buildpacks:
    - heroku/python
    - heroku/nodejs
  addons:
    - heroku-postgresql
    - heroku-redis:mini
  copy_to_root:
    - Procfile
"""


class TestValidateSanityfile:
    """Tests for validate_sanityfile."""

    def test_valid(self):
        assert validate_sanityfile({"heroku": {"app": "my-app"}}) == (True, None)

    def test_unknown_target(self):
        is_valid, error = validate_sanityfile({"dokku": {"app": "my-app"}})
        assert is_valid is False
        assert "dokku" in error

    def test_missing_app(self):
        is_valid, error = validate_sanityfile({"heroku": {"buildpacks": []}})
        assert is_valid is False
        assert error.startswith("heroku:")
        assert "'app' is a required property" in error

    def test_unknown_field(self):
        is_valid, error = validate_sanityfile(
            {"heroku": {"app": "my-app", "region": "eu"}}
        )
        assert is_valid is False
        assert "region" in error

    def test_wrong_item_type(self):
        is_valid, error = validate_sanityfile(
            {"heroku": {"app": "my-app", "buildpacks": [1]}}
        )
        assert is_valid is False
        assert "heroku.buildpacks.0" in error

    def test_empty_document(self):
        is_valid, _ = validate_sanityfile(None)
        assert is_valid is False
        is_valid, _ = validate_sanityfile({})
        assert is_valid is False


class TestParseSanityfile:
    """Tests for parse_sanityfile."""

    def test_full(self):
        target = parse_sanityfile(FULL)
        assert target.app == "my-app"
        assert target.buildpacks == ("heroku/python", "heroku/nodejs")
        assert target.addons == frozenset({"heroku-postgresql", "heroku-redis:mini"})
        assert target.copy_to_root == ("Procfile",)

    def test_defaults(self):
        target = parse_sanityfile("heroku:\n  app: my-app\n")
        assert target.buildpacks == ()
        assert target.addons == frozenset()
        assert target.copy_to_root == ()

    def test_invalid_yaml(self):
        with pytest.raises(SanityfileError) as exc_info:
            parse_sanityfile("heroku: [unclosed", "apps/web/Sanityfile")
        assert "invalid YAML" in str(exc_info.value)
        assert str(exc_info.value.path) == "apps/web/Sanityfile"

    def test_schema_error(self):
        with pytest.raises(SanityfileError) as exc_info:
            parse_sanityfile("heroku:\n  app: my-app\n  extra: 1\n")
        assert "extra" in str(exc_info.value)

    def test_bad_app_name(self):
        with pytest.raises(SanityfileError) as exc_info:
            parse_sanityfile("heroku:\n  app: My_App\n")
        assert "app must be" in str(exc_info.value)

    def test_copy_outside_directory_rejected(self):
        with pytest.raises(SanityfileError):
            parse_sanityfile("heroku:\n  app: my-app\n  copy_to_root: [../secrets]\n")


class TestHerokuTarget:
    """Tests for the HerokuTarget model."""

    def test_immutable(self):
        target = HerokuTarget(app="my-app", buildpacks=["heroku/python"])
        with pytest.raises(ValidationError):
            target.app = "other-app"

    def test_forbids_extra_fields(self):
        with pytest.raises(ValidationError):
            HerokuTarget(app="my-app", stack="heroku-22")

    def test_absolute_copy_path_rejected(self):
        with pytest.raises(ValidationError):
            HerokuTarget(app="my-app", copy_to_root=["/etc/passwd"])

    def test_same_service_twice_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            HerokuTarget(app="my-app", addons=["heroku-redis", "heroku-redis:mini"])
        assert "same service 'heroku-redis'" in str(exc_info.value)

    def test_distinct_services_with_plans(self):
        target = HerokuTarget(
            app="my-app", addons=["heroku-redis:mini", "heroku-postgresql:essential-0"]
        )
        assert len(target.addons) == 2


class TestLoadAndDiscover:
    """Tests for load_sanityfile and find_sanity_dirs."""

    def test_load(self, tmp_path):
        (tmp_path / "Sanityfile").write_text(FULL)
        assert load_sanityfile(tmp_path).app == "my-app"

    def test_load_missing(self, tmp_path):
        with pytest.raises(SanityfileError) as exc_info:
            load_sanityfile(tmp_path)
        assert "cannot read" in str(exc_info.value)

    def test_find_top_level_dirs_only(self, tmp_path):
        for rel in ["api", "api/nested", "web/frontend", ".hidden"]:
            (tmp_path / rel).mkdir(parents=True)
            (tmp_path / rel / "Sanityfile").write_text("heroku:\n  app: my-app\n")
        (tmp_path / "docs").mkdir()

        found = find_sanity_dirs(tmp_path)

        assert found == [tmp_path / "api", tmp_path / "web" / "frontend"]

    def test_root_itself(self, tmp_path):
        (tmp_path / "Sanityfile").write_text("heroku:\n  app: my-app\n")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "Sanityfile").write_text("heroku:\n  app: my-app\n")

        assert find_sanity_dirs(tmp_path) == [tmp_path]

    def test_custom_filename(self, tmp_path):
        (tmp_path / "svc").mkdir()
        (tmp_path / "svc" / "deploy.yml").write_text("heroku:\n  app: my-app\n")

        assert find_sanity_dirs(tmp_path) == []
        assert find_sanity_dirs(tmp_path, "deploy.yml") == [tmp_path / "svc"]

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_skips_git_ignored_dirs(self, tmp_path):
        subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True)
        (tmp_path / ".gitignore").write_text("vendor/\n")
        for rel in ["vendor/lib", "web"]:
            (tmp_path / rel).mkdir(parents=True)
            (tmp_path / rel / "Sanityfile").write_text("heroku:\n  app: my-app\n")

        assert find_sanity_dirs(tmp_path) == [tmp_path / "web"]

    def test_no_git_repository(self, tmp_path):
        (tmp_path / "web").mkdir()
        (tmp_path / "web" / "Sanityfile").write_text("heroku:\n  app: my-app\n")

        with patch("sanityfile.subprocess.run", side_effect=FileNotFoundError("git")):
            assert find_sanity_dirs(tmp_path) == [tmp_path / "web"]
