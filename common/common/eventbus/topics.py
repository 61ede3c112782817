from __future__ import annotations

from .core import Topic


TOPIC_DOWNLOAD = Topic("resource-hub.download")
