"""Configuration for the LLM workspace core."""

from pathlib import Path

# Base data directory, all runtime data stored here
DATA_DIR = Path("data")
DB_PATH = DATA_DIR / "workspace.db"

WORKSPACE_CONFIG = {
    # Execution context: "server" may use privileged-only backends (Vertex AI)
    "execution_context": "server",

    # Routing
    "default_model": "gemini-1.5-pro",

    # Context window
    "token_budget": 4000,
    "chars_per_token": 4,
    "tokens_per_memory": 100,

    # Memory retention
    "default_memory_importance": 5,
    "default_memory_kind": "message",

    # Request handling
    "anonymous_user_id": "anonymous-user",
    "stream_end_marker": "[DONE]",

    # Embeddings
    "embedding_backend": "litellm",  # litellm | local
    "embedding_model": "vertex_ai/textembedding-gecko",
    "embedding_dimensions": None,  # None keeps the model's native size
    "local_embedding_model": "all-MiniLM-L6-v2",

    # Providers
    "providers": {
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "organization_env": "OPENAI_ORGANIZATION",
            "defaults": {
                "temperature": 0.7,
                "max_output_tokens": 2048,
                "top_p": 0.95,
            },
        },
        "google": {
            "api_key_env": "GEMINI_API_KEY",
            "defaults": {
                "temperature": 0.7,
                "max_output_tokens": 2048,
                "top_k": 40,
                "top_p": 0.95,
            },
        },
        "vertex": {
            "project_env": "GOOGLE_CLOUD_PROJECT",
            "location_env": "VERTEX_AI_LOCATION",
            "default_location": "us-central1",
            "defaults": {
                "temperature": 0.7,
                "max_output_tokens": 1024,
                "top_p": 0.95,
            },
        },
    },
}
