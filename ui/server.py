# Save this file as: ui/server.py

import asyncio
import json
from dataclasses import asdict, fields
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

from voicetype.audio.decoder import AudioDecoder
from voicetype.storage.settings import Settings
from voicetype.stt.errors import EngineError
from voicetype.utils.logger import logger


app = FastAPI(title="VoiceType Control Panel", version="1.0.0")

# Allow local browser access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class EventBroadcaster:
    """
    Bridges pipeline threads to websocket clients.
    publish() is thread-safe; run() drains the queue on the server loop.
    """

    def __init__(self):
        self.clients: set = set()
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.queue: Optional[asyncio.Queue] = None

    def bind(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop
        self.queue = asyncio.Queue()

    def publish(self, event: Dict[str, Any]):
        if self.loop is None or self.queue is None:
            return
        try:
            asyncio.run_coroutine_threadsafe(self.queue.put(event), self.loop)
        except RuntimeError as e:
            # Loop already closed during shutdown
            logger.debug(f"Dropping event {event.get('type')}: {e}")

    async def run(self):
        while True:
            event = await self.queue.get()
            message = json.dumps(event)
            for ws in list(self.clients):
                try:
                    await ws.send_text(message)
                except Exception:
                    self.clients.discard(ws)


broadcaster = EventBroadcaster()
pipeline = None


class TranscribeRequest(BaseModel):
    paths: List[str]


class WordRequest(BaseModel):
    word: str


def _typed_fragment(text: str):
    broadcaster.publish({"type": "typed", "text": text})


def create_pipeline():
    """Build the dictation pipeline. Replaced in tests."""
    from voicetype.output.sink import CallbackSink
    from voicetype.pipeline.orchestrator import VoiceTyper

    return VoiceTyper(sink=CallbackSink(_typed_fragment), event_sink=broadcaster.publish)


@app.on_event("startup")
async def _startup():
    global pipeline
    broadcaster.bind(asyncio.get_running_loop())
    asyncio.create_task(broadcaster.run())
    # Model loading blocks; keep it off the event loop
    pipeline = await asyncio.to_thread(create_pipeline)
    logger.info("Control server started.")


@app.on_event("shutdown")
async def _shutdown():
    global pipeline
    if pipeline is not None:
        await asyncio.to_thread(pipeline.stop)
        pipeline = None


@app.post("/start")
async def start_recording():
    """Same as pressing the push-to-talk key."""
    return {"status": "recording" if pipeline.press() else "busy"}


@app.post("/stop")
async def stop_recording():
    """Same as releasing the push-to-talk key. Finalization runs in the background."""
    return {"status": "idle" if pipeline.release() is None else "processing"}


@app.get("/status")
async def status():
    return {
        "recording": pipeline.session.is_recording,
        "busy": pipeline.session.is_busy,
        "engine_ready": pipeline.engines.loaded,
    }


@app.get("/settings")
async def get_settings():
    return asdict(pipeline.settings_store.load())


@app.put("/settings")
async def update_settings(changes: Dict[str, Any]):
    """Merge known keys into the stored settings. Engine changes apply after /engine/reload."""
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(changes) - known)
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown settings: {', '.join(unknown)}")

    merged = {**asdict(pipeline.settings_store.load()), **changes}
    pipeline.settings_store.save(Settings(**merged))
    return merged


@app.post("/engine/reload")
async def reload_engine():
    try:
        await asyncio.to_thread(pipeline.reload_engine)
    except (EngineError, ValueError) as e:
        logger.error(f"Engine reload failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "ok"}


@app.get("/dictionary")
async def get_dictionary():
    return {"words": pipeline.dictionary.load()}


@app.post("/dictionary")
async def add_dictionary_word(request: WordRequest):
    pipeline.dictionary.add_word(request.word)
    return {"words": pipeline.dictionary.load()}


@app.delete("/dictionary/{word}")
async def remove_dictionary_word(word: str):
    pipeline.dictionary.remove_word(word)
    return {"words": pipeline.dictionary.load()}


@app.get("/history")
async def get_history():
    return {"transcriptions": [r.to_dict() for r in pipeline.history.load()]}


@app.delete("/history")
async def clear_history():
    pipeline.history.clear()
    return {"transcriptions": []}


@app.get("/devices")
async def devices():
    from voicetype.audio.devices import list_input_devices

    try:
        return {"devices": await asyncio.to_thread(list_input_devices)}
    except (ImportError, OSError) as e:
        logger.error(f"Could not list input devices: {e}")
        raise HTTPException(status_code=503, detail=f"Audio input unavailable: {e}")


@app.get("/formats")
async def formats():
    return {"formats": AudioDecoder.supported_formats()}


@app.post("/transcribe")
async def transcribe(request: TranscribeRequest):
    results = await asyncio.to_thread(pipeline.transcribe_files, request.paths)
    return {"results": [r.to_dict() for r in results]}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    broadcaster.clients.add(websocket)
    try:
        # Clients only listen; reading detects disconnects
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.clients.discard(websocket)


def run():
    uvicorn.run("ui.server:app", host="127.0.0.1", port=8000, reload=False)


if __name__ == "__main__":
    run()
