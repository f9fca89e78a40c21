"""HTTP API over the converter (FastAPI app in app.py, schemas in models.py)."""
