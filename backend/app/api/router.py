from fastapi import APIRouter

from app.api.endpoints import assembly, chat, debug, meetings, recordings, stream

api_router = APIRouter(prefix="/api")

api_router.include_router(meetings.router)
api_router.include_router(chat.router)
api_router.include_router(recordings.router)
api_router.include_router(stream.router)
api_router.include_router(assembly.router)
api_router.include_router(debug.router)
