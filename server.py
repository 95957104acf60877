from movie_agent.config import get_config
from movie_agent.server import create_app, startup_application

config = get_config()
app = create_app(startup_application(config))

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.host, port=config.port)
