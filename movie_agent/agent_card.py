from typing import Any, Dict

from .config import Config

VERSION = "0.1.0"


def build_agent_card(config: Config) -> Dict[str, Any]:
    return {
        "name": "Movie Agent",
        "description": "An agent that can answer questions about movies and actors using TMDB.",
        "url": config.public_url,
        "version": VERSION,
        "capabilities": {
            "streaming": True,
            "pushNotifications": False,
            "stateTransitionHistory": True,
        },
        "defaultInputModes": ["text"],
        "defaultOutputModes": ["text", "task-status"],
        "skills": [
            {
                "id": "general_movie_chat",
                "name": "General Movie Chat",
                "description": "Answer general questions or chat about movies, actors, directors.",
                "tags": ["movies", "actors", "directors"],
                "examples": [
                    "Tell me about the plot of Inception.",
                    "Recommend a good sci-fi movie.",
                    "Who directed The Matrix?",
                    "What other movies has Scarlett Johansson been in?",
                    "Find action movies starring Keanu Reeves",
                    "Which came out first, Jurassic Park or Terminator 2?",
                ],
                "inputModes": ["text"],
                "outputModes": ["text", "task-status"],
            }
        ],
        "supportsAuthenticatedExtendedCard": False,
    }
