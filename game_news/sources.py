"""Static feed lists, proxy templates and per-source tables."""
from __future__ import annotations

from typing import Dict, List, Tuple

from .models import FeedSource


def _feeds(pairs: List[Tuple[str, str]]) -> Tuple[FeedSource, ...]:
    return tuple(FeedSource(url=url, language=lang) for url, lang in pairs)


PRIMARY_FEEDS = _feeds([
    ("https://www.gamestar.de/rss/gamestar.rss", "de"),
    ("https://www.gamepro.de/rss/gamepro.rss", "de"),
    ("https://mein-mmo.de/feed/", "de"),
    ("https://www.pcgames.de/feed.cfm?menu_alias=home", "de"),
    ("https://de.ign.com/feed.xml", "de"),
    ("https://www.4p.de/feed", "de"),
    ("https://www.gamespot.com/feeds/mashup", "en"),
    ("https://gameinformer.com/rss.xml", "en"),
    ("https://www.polygon.com/rss/news/index.xml", "en"),
    ("https://kotaku.com/rss", "en"),
    ("https://www.pcgamer.com/rss/", "en"),
    ("https://www.gematsu.com/feed", "en"),
])

SECONDARY_FEEDS = _feeds([
    ("https://www.play3.de/feed/rss/", "de"),
    ("https://www.buffed.de/feed.cfm", "de"),
    ("https://www.xboxdynasty.de/cip_xd.rss.xml", "de"),
    ("https://www.playstationinfo.de/feed/", "de"),
    ("https://www.videogameszone.de/feed.cfm", "de"),
    ("https://www.computerbild.de/rssfeed_2261.html?node=12", "de"),
    ("https://www.gameswirtschaft.de/feed/", "de"),
    ("https://www.gamezone.de/feed.cfm?menu_alias=home/", "de"),
    ("https://playfront.de/feed/", "de"),
    ("https://www.gamersglobal.de/feeds/all", "de"),
    ("https://www.eurogamer.de/feed", "de"),
    ("https://www.pcgameshardware.de/feed.cfm?menu_alias=home", "de"),
    ("https://pixelcritics.com/feed", "de"),
    ("https://www.gameswelt.ch/feeds/artikel/rss.xml", "de"),
    ("https://jpgames.de/feed/", "de"),
    ("https://www.gamesradar.com/feeds.xml", "en"),
    ("https://www.rockpapershotgun.com/feed", "en"),
    ("https://www.destructoid.com/feed/", "en"),
    ("https://rss.golem.de/rss.php?feed=ATOM1.0&tp=games", "de"),
    ("https://www.giga.de/games/feed/", "de"),
    ("https://www.heise.de/rss/heise-atom.xml", "de"),
])

FEED_GROUPS: Dict[str, Tuple[FeedSource, ...]] = {
    "primary": PRIMARY_FEEDS,
    "secondary": SECONDARY_FEEDS,
}

# Each template receives the percent-encoded target URL.
FEED_PROXIES: Tuple[str, ...] = (
    "https://corsproxy.io/?{url}",
    "https://api.allorigins.win/raw?url={url}",
)

PAGE_PROXIES: Tuple[str, ...] = (
    "https://api.codetabs.com/v1/proxy?quest={url}",
    "https://corsproxy.io/?{url}",
    "https://api.allorigins.win/raw?url={url}",
)

# Order matters: first substring match wins (gamestar.de before pcgames.de etc.)
URL_TO_NAME_MAP: Dict[str, str] = {
    "play3.de": "Play3",
    "gamestar.de": "GameStar",
    "buffed.de": "Buffed",
    "xboxdynasty.de": "Xbox Dynasty",
    "playstationinfo.de": "PlayStation Info",
    "videogameszone.de": "Video Games Zone",
    "computerbild.de": "Computer Bild",
    "gameswirtschaft.de": "GamesWirtschaft",
    "gamepro.de": "GamePro",
    "gamezone.de": "GameZone",
    "playfront.de": "PlayFront",
    "gamersglobal.de": "GamersGlobal",
    "mein-mmo.de": "Mein-MMO",
    "eurogamer.de": "Eurogamer",
    "pcgames.de": "PC Games",
    "pcgameshardware.de": "PC Games Hardware",
    "ign.com": "IGN",
    "4p.de": "4P",
    "pixelcritics.com": "PixelCritics",
    "gameswelt.ch": "GamesWelt",
    "jpgames.de": "JPGames",
    "gamesradar.com": "GamesRadar+",
    "gamespot.com": "GameSpot",
    "gameinformer.com": "Game Informer",
    "rockpapershotgun.com": "Rock Paper Shotgun",
    "polygon.com": "Polygon",
    "kotaku.com": "Kotaku",
    "pcgamer.com": "PC Gamer",
    "destructoid.com": "Destructoid",
    "gematsu.com": "Gematsu",
    "golem.de": "Golem",
    "giga.de": "GIGA Games",
    "heise.de": "Heise Online",
}

# Lowercase fragments matched against the canonical source name.
SOURCES_NEEDING_SCRAPING: Tuple[str, ...] = (
    "play3",
    "xboxdynasty",
    "playfront",
    "playstation info",
    "pixelcritics",
    "gameswelt",
    "jpgames",
)

TRACKER_DOMAINS: Tuple[str, ...] = ("cpx.golem.de",)
