import re
from functools import cached_property
from typing import Any, List, Mapping, Optional
from urllib.parse import SplitResult, urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from camouflage.errors import ConfigurationError


class RewriteOptions(BaseModel):
    """
    Static configuration of one middleware instance.

    Accepts both the camelCase keys used by the configuration surface
    (``mediaTypes``, ``rewriteHeaders``, ``rewriteContent``) and the snake_case
    field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: Optional[str] = None
    media_types: Optional[List[str]] = Field(default=None, alias="mediaTypes")
    ignore: Optional[str] = None
    rewrite_headers: bool = Field(default=False, alias="rewriteHeaders")
    rewrite_content: bool = Field(default=False, alias="rewriteContent")

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not value.isascii():
            # the URL is written into request and response headers
            raise ValueError(
                f"url must be ASCII, use the punycode host and a percent-encoded path: {value!r}"
            )
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"url must be absolute, got {value!r}")
        # accessing .port validates it
        parts.port
        return value

    @field_validator("ignore")
    @classmethod
    def _check_ignore(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"ignore is not a valid regular expression: {e}")
        return value

    @property
    def enabled(self) -> bool:
        return self.url is not None

    @cached_property
    def url_parts(self) -> Optional[SplitResult]:
        """The configured URL split into scheme, netloc and path, parsed once."""
        if self.url is None:
            return None
        return urlsplit(self.url)

    @cached_property
    def ignore_pattern(self) -> Optional[re.Pattern]:
        if self.ignore is None:
            return None
        return re.compile(self.ignore)

    @classmethod
    def build(cls, config: Any = None, **kwargs) -> "RewriteOptions":
        """
        Build options from an existing instance, a mapping, keyword arguments or nothing.

        Raises:
            ConfigurationError: when the configuration does not validate.
        """
        if isinstance(config, cls) and not kwargs:
            return config
        if isinstance(config, cls):
            data = config.model_dump()
        elif isinstance(config, Mapping):
            data = dict(config)
        elif config is None:
            data = {}
        else:
            raise ConfigurationError(
                f"Unsupported rewrite options type: {type(config).__name__}"
            )
        data.update(kwargs)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid rewrite options: {e}") from e
