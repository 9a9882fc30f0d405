from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api.routes import router
from core.mysql_connector import ConnectionManager

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # 退出时释放单例连接
    db = ConnectionManager.current()
    if db is not None:
        db.close()

def create_app():
    app = FastAPI(title="MySQL Singleton Demo", lifespan=lifespan)

    # 1. 允许跨域
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 2. 注册 API 路由
    app.include_router(router, tags=["Users"])

    return app

app = create_app()
