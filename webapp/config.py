"""Settings for the printf validator web API."""

from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from printf_validator import ValidatorOptions


class Settings(BaseSettings):
	"""Read from PRINTF_VALIDATOR_* environment variables or a local .env file."""

	model_config = SettingsConfigDict(
		env_prefix="PRINTF_VALIDATOR_",
		env_file=".env",
		extra="ignore",
	)

	api_title: str = "Printf Validator"
	api_version: str = "1.0.0"
	# e.g. PRINTF_VALIDATOR_CORS_ORIGINS='["http://localhost:5173"]'
	cors_origins: List[str] = ["*"]
	log_level: str = "INFO"
	host: str = "127.0.0.1"
	port: int = 8000

	# Requests with more lines than this are rejected with 413.
	max_lines: int = 1000

	# Defaults for requests that leave an option unset.
	strict_numbers: bool = False
	strict_strings: bool = False
	propagate_unknown: bool = False

	def default_options(self) -> ValidatorOptions:
		return ValidatorOptions(
			strict_numbers=self.strict_numbers,
			strict_strings=self.strict_strings,
			propagate_unknown=self.propagate_unknown,
		)


settings = Settings()
