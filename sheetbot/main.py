import logging

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
# httpx 的请求日志会带上完整 URL（含 bot token / api key）
logging.getLogger("httpx").setLevel(logging.WARNING)

from sheetbot.app import create_app  # noqa: E402

app = create_app()
