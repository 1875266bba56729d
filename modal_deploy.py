import modal

# Define the image with necessary Python dependencies
image = (
    modal.Image.debian_slim()
    .pip_install(
        "fastapi>=0.104.1",
        "langchain-core>=0.3.0",
        "langchain-openai",
        "langchain-anthropic",
        "langchain-google-genai",
        "pydantic>=2.0",
        "python-dotenv>=0.21.0",
        "uvicorn>=0.24.0",
        "aiosqlite",
    )
    .add_local_python_source("chainport")
)

app = modal.App("chainport")

# Volume holding the SQLite chain store so compiled chains survive restarts
volume = modal.Volume.from_name("chainport-volume", create_if_missing=True)


@app.function(
    image=image,
    secrets=[modal.Secret.from_dotenv()],  # Load secrets from local .env file
    volumes={"/data": volume},
    timeout=600,  # long chains make one model call per step
)
@modal.asgi_app()
def fastapi_app():
    import os

    # Point the chain store at the persistent volume
    os.environ["DB_PATH"] = "/data/chainport.db"

    from chainport.server import app as server_app
    return server_app
