import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from storefront.bot.handlers import router
from storefront.config import require_bot_token, settings
from storefront.core.context import AppContext
from storefront.utils.logs import setup_logging

logger = logging.getLogger(__name__)

async def main() -> None:
    setup_logging(settings.log_level)

    ctx = AppContext.from_settings(settings)

    bot = Bot(token=require_bot_token(), default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher(ctx=ctx)
    dp.include_router(router)

    logger.info("Storefront bot polling against %s", settings.api_base_url)
    try:
        await dp.start_polling(bot)
    finally:
        ctx.close()

def run() -> None:
    asyncio.run(main())

if __name__ == "__main__":
    run()
