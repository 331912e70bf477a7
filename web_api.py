"""
FastAPI 后端接口：
- /import         POST 上传纯文本书籍，启动后台分析任务
- /import/text    POST 直接提交书籍文本，启动后台分析任务
- /import/stream  POST 上传书籍，以 Server-Sent Events 推送进度和结果
- /jobs/{job_id}  GET  查询任务状态
- /estimate       POST 上传书籍，估算处理方式与 token 消耗

启动方式：
  uvicorn web_api:app --reload --port 8000
"""
import asyncio
import contextlib
import json
import logging
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fastapi import BackgroundTasks, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from config import get_processing_config
from exceptions import APIKeyError, ConfigurationError, EncodingError, InputValidationError
from models.processing_state import ProgressEvent, ProgressPhase
from services.book_analysis_service import BookAnalysisService
from services.file_service import FileService
from services.llm_service import create_llm_service
from services.token_estimator import estimate_tokens
from validators import MANUSCRIPT_EXTENSIONS, validate_book_text

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Грешка при импортиране на книгата. Моля, опитайте отново."
MAX_UPLOAD_BYTES = 15 * 1024 * 1024
TEXT_CONTENT_TYPES = ("text/plain", "text/markdown", "application/octet-stream")


class ImportTextRequest(BaseModel):
    text: str


@dataclass
class Job:
    id: str
    status: str = "pending"  # pending|running|success|error
    phase: str = ""
    percent: float = 0.0
    message: str = ""
    truncated: bool = False
    result: dict[str, Any] = field(default_factory=dict)
    logs: list[str] = field(default_factory=list)

    def log(self, text: str) -> None:
        """Append a log line and keep list size bounded."""
        self.logs.append(text)
        if len(self.logs) > 200:
            # 只保留最近 200 条，避免内存增长过快
            self.logs = self.logs[-200:]

    def apply(self, event: ProgressEvent) -> None:
        """把流水线进度事件映射到任务状态"""
        self.phase = event.phase.value
        if event.percent is not None:
            self.percent = event.percent
        if event.message:
            self.message = event.message
            self.log(event.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "phase": self.phase,
            "percent": self.percent,
            "message": self.message,
            "truncated": self.truncated,
            "result": self.result,
            "logs": self.logs,
        }


JOBS: dict[str, Job] = {}

app = FastAPI(title="Book Import API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure_message(exc: Exception) -> str:
    """面向用户的错误提示；传输失败统一提示重试"""
    if isinstance(exc, (ConfigurationError, APIKeyError)):
        return f"配置错误: {exc.message}"
    return RETRY_MESSAGE


def _prepare_text(text: str) -> tuple[str, bool]:
    config = get_processing_config()
    try:
        return validate_book_text(text, config.min_input_chars, config.max_input_chars)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e


async def _read_upload(file: UploadFile) -> str:
    """读取并解码上传的纯文本文件"""
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in MANUSCRIPT_EXTENSIONS and file.content_type not in TEXT_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"仅支持纯文本文件: {', '.join(MANUSCRIPT_EXTENSIONS)}",
        )

    raw = await file.read()
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="文件过大，限制15MB")

    try:
        text, _ = FileService().decode_upload(raw, file.filename or "upload")
    except EncodingError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    return text


async def _run_job(job: Job, text: str) -> None:
    job.status = "running"
    job.log(f"开始分析 {len(text)} 个字符")

    llm_service = None
    try:
        llm_service = create_llm_service()
        service = BookAnalysisService(llm_service, progress_callback=job.apply)
        result = await service.analyze(text)
        job.result = {
            "analysis": result.to_dict(),
            "summary": service.last_run_summary(),
            "originalTextLength": len(text),
        }
        job.status = "success"
        job.log("处理完成")

    except Exception as e:  # noqa: BLE001
        logger.error(f"任务 {job.id} 失败: {e}")
        job.status = "error"
        job.phase = ProgressPhase.FAILED.value
        job.message = _failure_message(e)
        job.log(f"错误: {e}")

    finally:
        if llm_service is not None:
            await llm_service.aclose()


def _start_job(text: str, background_tasks: BackgroundTasks) -> dict[str, Any]:
    text, truncated = _prepare_text(text)

    job = Job(id=str(uuid.uuid4()), truncated=truncated)
    if truncated:
        job.log(f"文本已截断为 {len(text)} 个字符")
    JOBS[job.id] = job

    background_tasks.add_task(_run_job, job, text)
    return {"job_id": job.id, "text_length": len(text), "truncated": truncated}


@app.post("/import")
async def import_book(background_tasks: BackgroundTasks, file: UploadFile = File(...)):
    text = await _read_upload(file)
    return _start_job(text, background_tasks)


@app.post("/import/text")
async def import_text(body: ImportTextRequest, background_tasks: BackgroundTasks):
    return _start_job(body.text, background_tasks)


def _sse(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def _stream_analysis(text: str, truncated: bool) -> AsyncIterator[str]:
    """运行分析并把进度事件转成SSE消息"""
    queue: asyncio.Queue = asyncio.Queue()

    async def worker() -> None:
        llm_service = None
        try:
            llm_service = create_llm_service()
            service = BookAnalysisService(
                llm_service,
                progress_callback=lambda event: queue.put_nowait(("progress", event.to_dict())),
            )
            result = await service.analyze(text)
            queue.put_nowait(("complete", {
                "success": True,
                "analysis": result.to_dict(),
                "originalTextLength": len(text),
                "truncated": truncated,
            }))
        except Exception as e:  # noqa: BLE001
            logger.error(f"流式导入失败: {e}")
            queue.put_nowait(("error", {"error": _failure_message(e)}))
        finally:
            if llm_service is not None:
                await llm_service.aclose()
            queue.put_nowait(None)

    task = asyncio.create_task(worker())
    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            event, data = item
            yield _sse(event, data)
    finally:
        # 客户端断开时不再继续调用LLM，并等到任务收尾（关闭客户端）后再返回
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


@app.post("/import/stream")
async def import_stream(file: UploadFile = File(...)):
    text = await _read_upload(file)
    text, truncated = _prepare_text(text)
    return StreamingResponse(
        _stream_analysis(text, truncated),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@app.post("/estimate")
async def estimate(file: UploadFile = File(...)):
    text = await _read_upload(file)
    text, truncated = _prepare_text(text)
    return {**estimate_tokens(text), "text_length": len(text), "truncated": truncated}


@app.get("/jobs/{job_id}")
def get_job(job_id: str):
    job = JOBS.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="job 不存在")
    return job.to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_api:app", host="0.0.0.0", port=8000, reload=True)
