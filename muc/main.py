"""
muc.main
~~~~~~~~

应用入口：组装房间注册表、事件分发器与 XMPP 组件，
在生命周期内后台运行组件连接守护，并挂载只读 HTTP 查询接口。
"""
from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from muc.api import room
from muc.core.config import settings
from muc.core.logging import get_logger, setup_logging
from muc.schemas.api_response import ApiResponse
from muc.services.dispatcher import EventDispatcher
from muc.services.room_registry import RoomRegistry
from muc.transport.component import MucComponent
from muc.transport.supervisor import ComponentSupervisor

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子：状态全部在内存中，关闭即丢弃。"""
    # ── 启动 ──
    registry = RoomRegistry()
    component = MucComponent(
        settings.COMPONENT_JID,
        settings.COMPONENT_SECRET,
        settings.XMPP_HOST,
        settings.XMPP_PORT,
        service_name=settings.SERVICE_NAME,
    )
    component.bind(EventDispatcher(registry, component))
    app.state.registry = registry
    app.state.component = component

    supervisor_task: asyncio.Task[None] | None = None
    if settings.XMPP_AUTOCONNECT:
        supervisor = ComponentSupervisor(component, settings.RECONNECT_DELAY)
        supervisor_task = asyncio.create_task(supervisor.run())

    logger.info(
        "🚀 应用已启动 | env=%s | component=%s | xmpp=%s:%d | autoconnect=%s",
        settings.ENVIRONMENT,
        settings.COMPONENT_JID,
        settings.XMPP_HOST,
        settings.XMPP_PORT,
        settings.XMPP_AUTOCONNECT,
    )
    yield
    # ── 关闭 ──
    if supervisor_task is not None:
        supervisor_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await supervisor_task
    logger.info("👋 应用已关闭")


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人聊天室组件的只读查询接口",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

app.include_router(room.router, prefix="/api", tags=["Rooms"])


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check() -> JSONResponse:
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "component": settings.COMPONENT_JID,
            "log_level": settings.effective_log_level,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "muc.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )
