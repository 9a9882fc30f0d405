from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import List, Dict, Any

from core.errors import DatabaseError
from core.mysql_connector import ConnectionManager, get_db

router = APIRouter()

# --- 定义请求体模型 ---
class UserCreate(BaseModel):
    name: str
    email: str

# --- 接口定义 ---

@router.get("/health")
async def health(db: ConnectionManager = Depends(get_db)):
    row = db.fetch_one("SELECT 1 AS ok")
    return {"status": "ok" if row else "down", "database": db.database}

@router.get("/users")
async def list_users(db: ConnectionManager = Depends(get_db)) -> List[Dict[str, Any]]:
    return db.fetch_all("SELECT id, name, email FROM users ORDER BY id")

@router.get("/users/{user_id}")
async def get_user(user_id: int, db: ConnectionManager = Depends(get_db)):
    user = db.fetch_one("SELECT id, name, email FROM users WHERE id = %s", [user_id])
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user

@router.post("/users", status_code=201)
async def create_user(payload: UserCreate, db: ConnectionManager = Depends(get_db)):
    """
    在事务内插入一条用户记录，失败则回滚
    各请求在事件循环上串行执行，共用同一个连接
    """
    db.begin_transaction()
    try:
        with db.query(
            "INSERT INTO users (name, email) VALUES (%s, %s)",
            [payload.name, payload.email],
        ):
            new_id = db.last_insert_id()
        db.commit()
    except DatabaseError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return {"id": new_id}
