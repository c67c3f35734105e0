import asyncio
import logging
import os
from typing import List, Optional, Sequence

import discord
from dotenv import load_dotenv

from game_news import Article, FilterOptions, JsonFileStore, NewsAggregator, Settings, filter_articles

logger = logging.getLogger(__name__)

MESSAGE_LIMIT = 2000
ARTICLES_PER_MESSAGE = 5


def parse_command(content: str) -> FilterOptions:
    """
    Turn "!news [de|en] [today|yesterday|7d] [search words...]" into filter options.
    """
    language = "all"
    time_range = "all"
    words: List[str] = []
    for token in content.split()[1:]:
        lowered = token.lower()
        if lowered in ("de", "en") and language == "all":
            language = lowered
        elif lowered in ("today", "yesterday", "7d") and time_range == "all":
            time_range = lowered
        else:
            words.append(token)
    return FilterOptions(search_query=" ".join(words), language=language, time_range=time_range)


def format_articles(articles: Sequence[Article], limit: int = ARTICLES_PER_MESSAGE) -> str:
    if not articles:
        return "No news found."

    response = f"📰 Latest {min(limit, len(articles))} articles\n\n"
    for item in articles[:limit]:
        response += f"**{item.title}**\n"
        response += f"*{item.source} - {item.published_at.strftime('%Y-%m-%d %H:%M')}*\n"
        response += f"<{item.link}>\n\n"

    # Keep under Discord's message size limit
    if len(response) > MESSAGE_LIMIT:
        response = response[:MESSAGE_LIMIT - 3] + "..."
    return response


class NewsClient(discord.Client):
    def __init__(self, *, settings: Settings, **kwargs) -> None:
        super().__init__(**kwargs)
        self.settings = settings
        self.aggregator: Optional[NewsAggregator] = None
        self._scrape_task: Optional[asyncio.Task] = None

    async def setup_hook(self) -> None:
        self.aggregator = NewsAggregator(JsonFileStore(self.settings.cache_path), settings=self.settings)
        await self.aggregator.__aenter__()

    async def close(self) -> None:
        if self.aggregator is not None:
            await self.aggregator.__aexit__(None, None, None)
        await super().close()

    async def on_ready(self) -> None:
        logger.info("Logged in as %s", self.user)

    async def on_message(self, message: discord.Message) -> None:
        if message.author == self.user or not message.content.startswith("!news"):
            return

        await message.channel.send("Fetching the latest news... one moment.")
        result = await self.aggregator.load()
        if result.error and not result.articles:
            await message.channel.send(result.error)
            return

        articles = filter_articles(result.articles, parse_command(message.content))
        await message.channel.send(format_articles(articles))

        if self._scrape_task is None or self._scrape_task.done():
            self._scrape_task = asyncio.create_task(self.aggregator.enrich_images())


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        raise ValueError("DISCORD_BOT_TOKEN is not set. Check your .env file.")

    intents = discord.Intents.default()
    intents.message_content = True  # needed to read commands
    client = NewsClient(settings=Settings.from_env(), intents=intents)
    client.run(token)


if __name__ == "__main__":
    main()
