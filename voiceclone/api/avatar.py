"""Client for the avatar animation collaborator endpoints."""

import logging
from typing import Any, Callable, List, Optional

import aiohttp
from pydantic import ValidationError

from ..errors import ApiRequestFailed, AvatarRequestFailed
from ..models.avatar import Animation, Avatar
from ..services.polling import poll_until_terminal
from .client import BaseApiClient

logger = logging.getLogger(__name__)


class AvatarClient(BaseApiClient):
    """Thin wrapper around ``/avatar``; each call is a plain request/response."""

    async def _call(self, action: str, method: str, path: str, **kwargs) -> Any:
        try:
            return await self._request_json(method, path, **kwargs)
        except ApiRequestFailed as e:
            raise AvatarRequestFailed(f"Failed to {action}: {e.detail}") from e

    @staticmethod
    def _parse(model, payload: Any, action: str):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise AvatarRequestFailed(f"Failed to {action}: malformed response") from e

    async def upload_avatar(self, image: bytes, name: str, description: Optional[str] = None,
                            filename: str = "avatar.jpg", content_type: str = "image/jpeg") -> Avatar:
        """Upload a face photo to create an avatar."""
        form = aiohttp.FormData()
        form.add_field('image', image, filename=filename, content_type=content_type)
        form.add_field('name', name)
        if description:
            form.add_field('description', description)

        payload = await self._call("upload avatar", 'POST', '/avatar/upload', data=form)
        avatar = self._parse(Avatar, payload, "upload avatar")
        logger.info(f"Avatar uploaded: {avatar.id} ({avatar.name})")
        return avatar

    async def animate(self, avatar_id: int, text: str, voice_id: str) -> Animation:
        """Start an animation of ``text`` spoken in the cloned voice."""
        payload = await self._call("start animation", 'POST', '/avatar/animate',
                                   json={"avatarId": avatar_id, "text": text, "voiceId": voice_id})
        return self._parse(Animation, payload, "start animation")

    async def list_animations(self, avatar_id: int) -> List[Animation]:
        """Get all animations for an avatar."""
        payload = await self._call("fetch animations", 'GET', f'/avatar/{avatar_id}/animations')
        if not isinstance(payload, list):
            return []
        return [self._parse(Animation, item, "fetch animations") for item in payload]

    async def get_animation_status(self, animation_id: int) -> Animation:
        payload = await self._call("fetch animation status", 'GET',
                                   f'/avatar/animations/{animation_id}/status')
        return self._parse(Animation, payload, "fetch animation status")

    async def poll_animation(self, animation_id: int,
                             on_update: Optional[Callable[[Animation], None]] = None,
                             interval: float = 2.0) -> Animation:
        """Poll an animation until it is completed or failed."""
        return await poll_until_terminal(
            check=lambda: self.get_animation_status(animation_id),
            is_terminal=lambda animation: animation.status.is_terminal,
            interval=interval,
            on_update=on_update,
        )
