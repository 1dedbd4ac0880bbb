"""
Request/response models for the play library API.

Keyframes are stored exactly as the board serialises them
(see entities.KeyFrame.to_dict); the models only check their shape.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PositionModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    x: float
    y: float


class BallModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    position: PositionModel
    possessionPlayerId: Optional[str] = None


class KeyFrameModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    timestamp: int
    positions: Dict[str, PositionModel]
    ball: Optional[BallModel] = None
    touchCount: Optional[int] = None


class FolderCreate(BaseModel):
    name: str = Field(min_length=1)


class FolderRename(BaseModel):
    name: str = Field(min_length=1)


class PlayCreate(BaseModel):
    name: str = Field(min_length=1)
    category: str = "default"
    folderId: Optional[int] = None
    keyframes: List[KeyFrameModel]

    def keyframe_dicts(self) -> list:
        """Keyframes as sent: explicit nulls and unknown keys kept, unsent
        optional fields left out."""
        return [kf.model_dump(exclude_unset=True) for kf in self.keyframes]


class PlayFolderUpdate(BaseModel):
    folderId: Optional[int] = None
