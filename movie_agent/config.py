from pydantic import BaseModel
import os
from dotenv import load_dotenv

load_dotenv()

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1")
GENERATIVE_MODEL_ID = os.getenv(
    "GENERATIVE_MODEL_ID", "meta-llama/llama-3.1-8b-instruct:free"
)
TMDB_API_KEY = os.getenv("TMDB_API_KEY")
TOOL_CHOICE = os.getenv("TOOL_CHOICE", "auto")
TEMPERATURE = os.getenv("TEMPERATURE", "0.7")
MAX_TOKENS = os.getenv("MAX_TOKENS", "2000")
TMDB_IMAGE_BASE_URL = os.getenv("TMDB_IMAGE_BASE_URL", "https://image.tmdb.org/t/p/w500")
MAX_DETAIL_RESULTS = os.getenv("MAX_DETAIL_RESULTS", "5")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "41241")
PUBLIC_URL = os.getenv("PUBLIC_URL")


class Config(BaseModel):
    llm_api_key: str
    llm_base_url: str
    generative_model_id: str
    tmdb_api_key: str
    tool_choice: str = "auto"
    temperature: float = 0.7
    max_tokens: int = 2000
    image_base_url: str = "https://image.tmdb.org/t/p/w500"
    max_detail_results: int = 5
    host: str = "0.0.0.0"
    port: int = 41241
    public_url: str = "http://localhost:41241/"


def get_config() -> Config:
    return Config(
        llm_api_key=OPENROUTER_API_KEY,
        llm_base_url=LLM_BASE_URL,
        generative_model_id=GENERATIVE_MODEL_ID,
        tmdb_api_key=TMDB_API_KEY,
        tool_choice=TOOL_CHOICE,
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
        image_base_url=TMDB_IMAGE_BASE_URL,
        max_detail_results=MAX_DETAIL_RESULTS,
        host=HOST,
        port=PORT,
        public_url=PUBLIC_URL or f"http://localhost:{PORT}/",
    )
