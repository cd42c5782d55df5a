# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Session verbs.

``Actor`` combines the navigation/element verbs of ``BaseActor`` with the
form, tab and inflation verbs.  ``FramesActor`` adds frame targeting.
"""

from __future__ import annotations

from .base import BaseActor
from .forms import FormsMixin
from .frames import FramesMixin
from .inflating import InflatingMixin
from .tabs import TabsMixin


class Actor(FormsMixin, TabsMixin, InflatingMixin, BaseActor):
    """All verbs against the top-level document of the active tab."""


class FramesActor(FramesMixin, Actor):
    """All verbs, with element/cookie/referrer verbs run inside one frame."""


__all__ = ["Actor", "BaseActor", "FramesActor"]
