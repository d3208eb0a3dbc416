"""Pytest fixtures and configuration."""

import pytest
from fastapi.testclient import TestClient

from printf_validator import PrintfValidatorEngine, ValidatorOptions
from webapp.main import app


@pytest.fixture
def client():
	"""Test client for the FastAPI app."""
	return TestClient(app)


@pytest.fixture
def engine():
	"""Engine with the default (permissive) options."""
	return PrintfValidatorEngine()


@pytest.fixture
def strict_engine():
	"""Engine with every optional check switched on."""
	return PrintfValidatorEngine(ValidatorOptions(strict_numbers=True, strict_strings=True, propagate_unknown=True))


@pytest.fixture
def sample_file(tmp_path):
	path = tmp_path / "lines.txt"
	path.write_text(
		'printf("%d items", 42);\n'
		'printf("%f", 1 + 2.5);\n'
		'printf("%d", 1 + 2.5);\n'
		'printf "hi");\n',
		encoding="utf-8",
	)
	return path
