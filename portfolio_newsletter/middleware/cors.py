from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from portfolio_newsletter.config import Settings

def setup_cors(app: FastAPI, settings: Settings):
    """Configure CORS for the application"""
    origins = [settings.frontend_url]
    if settings.environment == "development":
        origins += [
            "http://localhost:5173",  # Vite dev server
            "http://localhost:8000",  # Local backend serving the built SPA
        ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"]
    )
