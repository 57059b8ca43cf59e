"""Tests for configuration and the category list."""

import os
import sys

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import AppConfig
from sources.loader import CategoryConfig, CategoryLoader, load_categories

EXPECTED_CATEGORIES = [
    "shortner", "ai", "download", "search", "islam",
    "stalk", "details", "tools", "converter", "arab"
]


def test_bundled_category_list():
    assert load_categories() == EXPECTED_CATEGORIES


def test_slugs_are_normalized():
    config = CategoryConfig(categories=["/ai", " download ", "ai", "", "/"])
    assert config.categories == ["ai", "download"]


def test_empty_category_list_rejected():
    with pytest.raises(ValueError):
        CategoryConfig(categories=[])


def test_loader_reads_custom_file(tmp_path):
    path = tmp_path / "cats.yaml"
    path.write_text("categories:\n  - /tools\n  - ai\n", encoding="utf-8")
    
    assert CategoryLoader(path).load().categories == ["tools", "ai"]


def test_loader_reads_the_file_on_every_load(tmp_path):
    path = tmp_path / "cats.yaml"
    path.write_text("categories:\n  - ai\n", encoding="utf-8")
    loader = CategoryLoader(path)
    assert loader.load().categories == ["ai"]
    
    path.write_text("categories:\n  - ai\n  - download\n", encoding="utf-8")
    assert loader.load().categories == ["ai", "download"]


@pytest.mark.parametrize("content", ["", "categories: ai\n", "- ai\n", "categories: [\n"])
def test_loader_rejects_malformed_files(tmp_path, content):
    path = tmp_path / "cats.yaml"
    path.write_text(content, encoding="utf-8")
    
    with pytest.raises(ValueError):
        CategoryLoader(path).load()


def test_loader_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CategoryLoader(tmp_path / "missing.yaml").load()


def test_defaults_from_env(monkeypatch):
    for name in ("MAKAMESCO_UPSTREAM_ORIGIN", "MAKAMESCO_PROXY_PREFIX", "MAKAMESCO_AUTO_SCRAPE",
                 "MAKAMESCO_UPSTREAM_TIMEOUT", "MAKAMESCO_CATEGORIES_FILE", "SQLITE_PATH"):
        monkeypatch.delenv(name, raising=False)
    
    config = AppConfig.from_env()
    
    assert config.upstream_origin == "https://api.bk9.dev"
    assert config.upstream_host == "api.bk9.dev"
    assert config.proxy_prefix == "/makamesco"
    assert config.user_agent == "Makamesco-API/1.0"
    assert config.categories == EXPECTED_CATEGORIES
    assert config.auto_scrape is True
    assert config.upstream_timeout is None


def test_env_overrides(monkeypatch, tmp_path):
    cats = tmp_path / "cats.yaml"
    cats.write_text("categories: [ai]\n", encoding="utf-8")
    monkeypatch.setenv("MAKAMESCO_UPSTREAM_ORIGIN", "http://localhost:9000/")
    monkeypatch.setenv("MAKAMESCO_PROXY_PREFIX", "/proxy")
    monkeypatch.setenv("MAKAMESCO_AUTO_SCRAPE", "false")
    monkeypatch.setenv("MAKAMESCO_UPSTREAM_TIMEOUT", "12.5")
    monkeypatch.setenv("MAKAMESCO_CATEGORIES_FILE", str(cats))
    
    config = AppConfig.from_env()
    
    assert config.upstream_origin == "http://localhost:9000"
    assert config.proxy_prefix == "/proxy"
    assert config.auto_scrape is False
    assert config.upstream_timeout == 12.5
    assert config.categories == ["ai"]


@pytest.mark.parametrize("field, value", [
    ("upstream_origin", "api.bk9.dev"),
    ("upstream_origin", "ftp://api.bk9.dev"),
    ("proxy_prefix", "makamesco"),
    ("proxy_prefix", "/makamesco/"),
    ("categories", []),
])
def test_invalid_settings_rejected(field, value):
    kwargs = {"categories": ["ai"]}
    kwargs[field] = value
    with pytest.raises(ValidationError):
        AppConfig(**kwargs)
