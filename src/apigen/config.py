from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RequiredWithDefault = Literal["reject", "required_wins"]


class GeneratorConfig(BaseModel):
    """
    Knobs for a generation run. The CLI always uses the defaults.

    required_with_default:
      - "reject": a field tagged both required and default is a fatal error
      - "required_wins": keep both; the required check fires first, so the
        default never applies
    """

    model_config = ConfigDict(frozen=True)

    marker: str = Field("apigen:api", min_length=1)
    tag_key: str = Field("apivalidator", min_length=1)
    auth_header: str = Field("X-Auth", min_length=1)
    auth_token: str = "100500"
    required_with_default: RequiredWithDefault = "reject"
    source_module: Optional[str] = None  # import name of the input; file stem if unset
