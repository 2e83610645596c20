import hmac
import logging
import uvicorn
from datetime import datetime
from fastapi import FastAPI, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from reconciler import config
from reconciler.database import init_db, get_session
from reconciler.ingestion import ingest
from reconciler.messaging import setup_rabbitmq, close_rabbitmq
from reconciler.schemas import IngestionResult, ReconciliationStats, WebhookPayload
from reconciler.stats import get_statistics
from reconciler.store import SqlAlchemyStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="SMS Reconciliation Service")

@app.on_event("startup")
async def startup_event():
    await init_db()
    await setup_rabbitmq()

@app.on_event("shutdown")
async def shutdown_event():
    await close_rabbitmq()

@app.post("/webhook", response_model=IngestionResult)
async def receive_sms(payload: WebhookPayload, db: AsyncSession = Depends(get_session)):
    if not hmac.compare_digest(payload.token.encode(), config.WEBHOOK_TOKEN.encode()):
        logger.warning(f"Unauthorized webhook attempt from sender {payload.sender!r}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return await ingest(SqlAlchemyStore(db), payload.message, payload.sender)

@app.get("/api/stats", response_model=ReconciliationStats)
async def read_stats(db: AsyncSession = Depends(get_session)):
    return await get_statistics(SqlAlchemyStore(db))

@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
