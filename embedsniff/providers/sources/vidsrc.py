"""
VidSrc mirrors. The embed page shows a poster inside #the_frame; the player
(and its .m3u8 / .vtt requests) only loads after that region is clicked.

These domains rotate. If streams break, update this list.
"""
from __future__ import annotations

from ..base import Provider
from ..registry import register_provider
from ..triggers import ClickTrigger

DOMAINS = [
    "https://vidsrc.xyz",
    "https://vidsrc.in",
    "https://vidsrc.pm",
    "https://vidsrc.net",
]

FRAME_TRIGGER = ClickTrigger("#the_frame")

for domain in DOMAINS:
    register_provider(Provider(
        name=domain,
        movie_template=f"{domain}/embed/movie/{{id}}",
        tv_template=f"{domain}/embed/tv?tmdb={{id}}&season={{season}}&episode={{episode}}",
        trigger=FRAME_TRIGGER,
    ))
