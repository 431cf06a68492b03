from __future__ import annotations

from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RemoteImageSource(BaseModel):
    """
    A fetchable image reference. `headers` is only set for known provider
    hosts; every other URI travels without headers.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    uri: str
    headers: Optional[Dict[str, str]] = None
    width: Optional[int] = None
    height: Optional[int] = None
    cache_key: Optional[str] = None


class LocalImageAsset(BaseModel):
    """Bundled asset reference (opaque numeric handle); never host-classified."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["local"] = "local"
    asset: int


ImageSource = Annotated[Union[RemoteImageSource, LocalImageAsset], Field(discriminator="kind")]
