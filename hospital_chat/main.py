"""
Main application entry point for the hospital chat backend.
"""

import uvicorn
from .api.app import create_app

# Create the FastAPI application
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "hospital_chat.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True
    )
