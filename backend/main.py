from contextlib import asynccontextmanager
from typing import List

import structlog
import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from backend import ideas as idea_actions
from backend.auth import get_current_user_id
from backend.config import get_settings
from backend.database import get_session, init_db
from backend.generator import GeminiIdeaGenerator, IdeaGenerationError
from backend.logging_config import configure_logging
from backend.models import GenerationResult, Idea, IdeaDetails, Video, VideoComment

settings = get_settings()
configure_logging(settings.log_level)
logger = structlog.get_logger(__name__)

if not settings.gemini_api_key:
    logger.warning("GEMINI_API_KEY is not set. Gemini integration will fail.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting", app=settings.app_name, version=settings.app_version)
    init_db()
    yield
    logger.info("Shutting down", app=settings.app_name)


# Initialize FastAPI App
app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency for the idea generator
def get_idea_generator() -> GeminiIdeaGenerator:
    return GeminiIdeaGenerator()


@app.get("/")
def root():
    return {"name": settings.app_name, "version": settings.app_version, "docs": "/docs"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.post("/ideas/generate", response_model=GenerationResult)
def kickoff_idea_generation(
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    generator: GeminiIdeaGenerator = Depends(get_idea_generator),
):
    try:
        return idea_actions.kickoff_idea_generation(session, user_id, generator)
    except idea_actions.NoUnusedCommentsError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IdeaGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/ideas", response_model=List[Idea])
def get_new_ideas(user_id: str = Depends(get_current_user_id), session: Session = Depends(get_session)):
    try:
        return idea_actions.get_new_ideas(session, user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/ideas/details", response_model=IdeaDetails)
def get_idea_details(
    video_id: str,
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    try:
        return idea_actions.get_idea_details(session, user_id, video_id, comment_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/videos", response_model=List[Video])
def get_videos(user_id: str = Depends(get_current_user_id), session: Session = Depends(get_session)):
    try:
        return idea_actions.list_videos(session, user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/videos/{video_id}/comments", response_model=List[VideoComment])
def get_video_comments(
    video_id: str,
    unused_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    try:
        return idea_actions.list_video_comments(session, user_id, video_id, unused_only)
    except idea_actions.VideoNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


# Run the Application
if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
