import json
from contextlib import asynccontextmanager
from typing import List, Literal

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError

from neuralfinance.config import SERVER
from neuralfinance.core.contracts import RequestDescription, TrainingFormInput
from neuralfinance.training_server import ServerStateError, TrainingServer


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Do not leave a training thread behind on shutdown.
    app.state.training.stop_training()


app = FastAPI(
    title="NeuralFinance Training API",
    description="Single-endpoint controller for pushing quotes and running a training session.",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.training = TrainingServer(epoch_delay_s=SERVER.epoch_delay_s)


# Pydantic model for a single OHLC row as sent by the client
class OHLCRow(BaseModel):
    low: float
    open: float
    close: float
    high: float


class PushDataRequest(BaseModel):
    jsonData: List[OHLCRow]
    outputValue: Literal["low", "open", "close", "high"] = "close"


class StartTrainingRequest(BaseModel):
    epochs: int = Field(gt=0)
    increaseFactor: float = Field(gt=0)
    shrinkFactor: float = Field(gt=0)
    estimateLength: int = Field(gt=0)
    hiddenLayers: int = Field(default=0, ge=0)


def _validate(model, payload: dict):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


@app.post("/controller", summary="Training controller", response_description="Action result")
async def controller(request: Request):
    """
    Accepts a JSON object whose `description` selects the action:

    - `getData`: replace the training rows (`jsonData`) and the estimated field (`outputValue`)
    - `startTraining`: start training with the form fields
    - `stopTraining`: stop a running training
    - `sendTrainingOutput`: return `threadAlive`, `estimateValue`, `estimateLength`, `currentEpoch`
    """
    raw = await request.body()
    try:
        payload = json.loads(raw.decode("utf-8") or "null")
    except (UnicodeDecodeError, ValueError):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")

    try:
        description = RequestDescription(payload.get("description"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown description: {payload.get('description')!r}")

    # Stopping or replacing a run joins the trainer thread, keep that off the event loop.
    return await run_in_threadpool(_dispatch, request.app.state.training, description, payload)


def _dispatch(server: TrainingServer, description: RequestDescription, payload: dict):
    try:
        if description is RequestDescription.PUSH_DATA:
            req = _validate(PushDataRequest, payload)
            rows = server.push_data([row.model_dump() for row in req.jsonData], req.outputValue)
            return {"description": description.value, "rows": rows, "outputValue": req.outputValue}

        if description is RequestDescription.START_TRAINING:
            req = _validate(StartTrainingRequest, payload)
            form = TrainingFormInput.from_payload(req.model_dump())
            started = server.start_training(form)
            return {"description": description.value, "started": started}

        if description is RequestDescription.STOP_TRAINING:
            stopped = server.stop_training()
            return {"description": description.value, "stopped": stopped}

        # sendTrainingOutput
        return server.status().to_payload()
    except ServerStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/health", summary="Health check", response_description="API health status")
async def health_check():
    """
    Checks the health of the API.
    """
    return {"status": "ok", "training": _training_state(app)}


def _training_state(application: FastAPI) -> str:
    server: TrainingServer = application.state.training
    if server.is_alive():
        return "running"
    return "idle" if server.rows is None else "ready"

# To run this API:
# uvicorn api.main:app --reload --port 8000
# Then point the client at http://127.0.0.1:8000/controller
