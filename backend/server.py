import asyncio
import logging
import os
import sys

# Add current directory to path so we can import backend modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from typing import Any, Callable, Dict, Optional, Tuple, Type

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError, field_validator

from economy import Simulation
from scenarios import scenario_names

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

load_dotenv()


def _env_seed() -> Optional[int]:
    value = os.getenv("VENTURESIM_SEED")
    return int(value) if value else None


TICK_INTERVAL = float(os.getenv("VENTURESIM_TICK_INTERVAL", "0.1"))

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------------------------------------------------
# Request models
# ----------------------------------------------------------------------

class SetupRequest(BaseModel):
    name: str = "My Venture"
    category: str = "General"
    region: str = "Global"
    capital: float = Field(100_000.0, ge=0)
    seed: Optional[int] = None
    competitors: bool = True


class LoanRequest(BaseModel):
    amount: float
    term: int


class InvestmentRequest(BaseModel):
    kind: str
    amount: float
    maturity: int


class OrderRequest(BaseModel):
    supplier: str
    quantity: int


class WarehouseRequest(BaseModel):
    location: str
    capacity: int


class CrisisResponseRequest(BaseModel):
    action: str
    budget: float


class InvestmentAmountRequest(BaseModel):
    investment: float


class CampaignRequest(BaseModel):
    kind: str
    budget: float
    duration: int
    target_audience: str = "General"
    name: Optional[str] = None


class MarketResearchRequest(BaseModel):
    kind: str
    cost: float
    duration: int


class ExpansionRequest(BaseModel):
    country: str


class SubsidiaryRequest(BaseModel):
    country: str
    name: str
    capital: float


class StockSubsidiaryRequest(BaseModel):
    subsidiary: str
    product: str
    quantity: int = Field(gt=0)


class StaffSubsidiaryRequest(BaseModel):
    subsidiary: str
    name: str
    wage: float = Field(2000.0, ge=0)


class TradeAgreementRequest(BaseModel):
    country_a: str
    country_b: str
    cost: float


class ResearchProjectRequest(BaseModel):
    project: str


class ResearcherRequest(BaseModel):
    name: str
    specialization: str
    wage: float
    skill: float = 1.0
    efficiency: float = 1.0


class FeatureRequest(BaseModel):
    name: str


class ScenarioRequest(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def known_scenario(cls, value: str) -> str:
        if value not in scenario_names():
            raise ValueError(f"unknown scenario {value}")
        return value


class HireRequest(BaseModel):
    name: str
    role: str = "Worker"
    wage: float = 2000.0
    skill: float = 1.0


class FireRequest(BaseModel):
    name: str


class ProductRequest(BaseModel):
    name: str
    price: float
    cost: float
    category: Optional[str] = None
    quality: float = 1.0


class TrainingRequest(BaseModel):
    amount: float
    cost_per_employee: float


class AcquisitionRequest(BaseModel):
    target_id: int


class EmptyRequest(BaseModel):
    pass


# action name -> (request model, handler taking the simulation and the parsed request)
ACTIONS: Dict[str, Tuple[Type[BaseModel], Callable[[Simulation, Any], bool]]] = {
    "take_loan": (LoanRequest, lambda s, r: s.take_loan(r.amount, r.term)),
    "make_investment": (InvestmentRequest, lambda s, r: s.make_investment(r.kind, r.amount, r.maturity)),
    "place_order": (OrderRequest, lambda s, r: s.place_order(r.supplier, r.quantity)),
    "add_warehouse": (WarehouseRequest, lambda s, r: s.add_warehouse(r.location, r.capacity)),
    "respond_to_crisis": (CrisisResponseRequest, lambda s, r: s.respond_to_crisis(r.action, r.budget)),
    "improve_crisis_prevention": (
        InvestmentAmountRequest, lambda s, r: s.improve_crisis_prevention(r.investment)
    ),
    "launch_campaign": (
        CampaignRequest,
        lambda s, r: s.launch_campaign(r.kind, r.budget, r.duration, r.target_audience, r.name),
    ),
    "conduct_market_research": (
        MarketResearchRequest, lambda s, r: s.conduct_market_research(r.kind, r.cost, r.duration)
    ),
    "improve_customer_service": (
        InvestmentAmountRequest, lambda s, r: s.improve_customer_service(r.investment)
    ),
    "invest_in_social_responsibility": (
        InvestmentAmountRequest, lambda s, r: s.invest_in_social_responsibility(r.investment)
    ),
    "expand_to_market": (ExpansionRequest, lambda s, r: s.expand_to_market(r.country)),
    "create_subsidiary": (SubsidiaryRequest, lambda s, r: s.create_subsidiary(r.country, r.name, r.capital)),
    "stock_subsidiary": (
        StockSubsidiaryRequest, lambda s, r: s.stock_subsidiary(r.subsidiary, r.product, r.quantity)
    ),
    "staff_subsidiary": (StaffSubsidiaryRequest, lambda s, r: s.staff_subsidiary(r.subsidiary, r.name, r.wage)),
    "negotiate_trade_agreement": (
        TradeAgreementRequest, lambda s, r: s.negotiate_trade_agreement(r.country_a, r.country_b, r.cost)
    ),
    "start_research_project": (ResearchProjectRequest, lambda s, r: s.start_research_project(r.project)),
    "hire_researcher": (
        ResearcherRequest,
        lambda s, r: s.hire_researcher(r.name, r.specialization, r.wage, r.skill, r.efficiency),
    ),
    "unlock_feature": (FeatureRequest, lambda s, r: s.unlock_feature(r.name)),
    "start_scenario": (ScenarioRequest, lambda s, r: s.start_scenario(r.name)),
    "hire_employee": (HireRequest, lambda s, r: s.hire_employee(r.name, r.role, r.wage, r.skill)),
    "fire_employee": (FireRequest, lambda s, r: s.fire_employee(r.name)),
    "launch_product": (
        ProductRequest, lambda s, r: s.launch_product(r.name, r.price, r.cost, r.category, r.quality)
    ),
    "train_employees": (TrainingRequest, lambda s, r: s.train_employees(r.amount, r.cost_per_employee)),
    "acquire": (AcquisitionRequest, lambda s, r: s.acquire(r.target_id)),
    "go_public": (EmptyRequest, lambda s, r: s.go_public()),
}


class SimulationManager:
    """Holds the single in-memory run driven by REST calls and the websocket loop."""

    def __init__(self, tick_interval: float = TICK_INTERVAL):
        self.simulation: Optional[Simulation] = None
        self.is_running = False
        self.tick_interval = tick_interval
        self.active_websocket: Optional[WebSocket] = None

    def initialize(self, config: Optional[Dict[str, Any]] = None) -> Simulation:
        request = SetupRequest(**(config or {}))
        seed = request.seed if request.seed is not None else _env_seed()
        logger.info(f"Initializing venture {request.name} ({request.category}, seed={seed})")
        self.simulation = Simulation(seed=seed)
        self.simulation.start(
            request.name,
            request.category,
            request.region,
            request.capital,
            with_competitors=request.competitors,
        )
        self.is_running = False
        return self.simulation

    def require(self) -> Simulation:
        if self.simulation is None:
            raise HTTPException(status_code=409, detail="Simulation not initialized")
        return self.simulation

    def perform(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and dispatch one action against the current run."""
        simulation = self.require()
        if action not in ACTIONS:
            raise HTTPException(status_code=404, detail=f"Unknown action {action}")
        model, handler = ACTIONS[action]
        try:
            request = model.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=exc.errors(include_context=False))
        if action == "acquire" and request.target_id not in simulation.registry:
            raise HTTPException(status_code=404, detail=f"Unknown entity {request.target_id}")
        success = handler(simulation, request)
        if not success:
            logger.debug(f"Action {action} rejected")
        return {"action": action, "success": bool(success), "tick": simulation.current_tick}

    async def run_loop(self):
        if not self.simulation:
            logger.warning("Attempted to run loop without simulation. Waiting for SETUP.")
            return

        logger.info("Starting simulation loop")
        try:
            while self.is_running and self.active_websocket:
                start_time = asyncio.get_event_loop().time()

                report = self.simulation.step()
                if report is None:
                    self.is_running = False
                    await self.active_websocket.send_json({"type": "STOPPED", "state": self.simulation.get_state()})
                    break

                await self.active_websocket.send_json({
                    "type": "TICK",
                    "report": report.to_dict(),
                    "metrics": self.simulation.get_economic_metrics(),
                })

                if report.outcome is not None:
                    self.is_running = False
                    await self.active_websocket.send_json({"type": "OUTCOME", "outcome": report.outcome.to_dict()})
                    break

                # Throttle
                elapsed = asyncio.get_event_loop().time() - start_time
                await asyncio.sleep(max(0.0, self.tick_interval - elapsed))

        except WebSocketDisconnect:
            self.is_running = False
        except Exception as e:
            logger.error(f"Simulation loop error: {e}")
            self.is_running = False
            if self.active_websocket:
                await self.active_websocket.send_json({"error": str(e)})


manager = SimulationManager()


@app.post("/simulation")
def setup_simulation(request: SetupRequest):
    simulation = manager.initialize(request.model_dump())
    return simulation.get_state()


@app.post("/simulation/step")
def step_simulation(ticks: int = 1):
    simulation = manager.require()
    if ticks < 1:
        raise HTTPException(status_code=422, detail="ticks must be at least 1")
    reports = simulation.run(ticks)
    return {
        "ticks_run": len(reports),
        "reports": [r.to_dict() for r in reports],
        "state": simulation.get_state(),
    }


@app.get("/simulation/state")
def simulation_state():
    return manager.require().get_state()


@app.get("/simulation/entities/{entity_id}")
def entity_state(entity_id: int):
    simulation = manager.require()
    entity = simulation.registry.get(entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity {entity_id}")
    return entity.to_dict()


@app.post("/simulation/pause")
def pause_simulation():
    simulation = manager.require()
    simulation.pause()
    return {"paused": simulation.is_paused}


@app.post("/simulation/resume")
def resume_simulation():
    simulation = manager.require()
    simulation.resume()
    return {"paused": simulation.is_paused}


@app.post("/actions/{action}")
def perform_action(action: str, payload: Optional[Dict[str, Any]] = None):
    return manager.perform(action, payload or {})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    manager.active_websocket = websocket
    logger.info("WebSocket connected")

    try:
        while True:
            data = await websocket.receive_json()
            command = data.get("command")

            if command == "SETUP":
                manager.initialize(data.get("config", {}))
                await websocket.send_json({"type": "SETUP_COMPLETE", "state": manager.simulation.get_state()})
            elif command == "START":
                if not manager.simulation:
                    # Auto-initialize if not done yet
                    manager.initialize()
                manager.simulation.resume()
                if not manager.is_running:
                    manager.is_running = True
                    asyncio.create_task(manager.run_loop())
            elif command == "STOP":
                manager.is_running = False
                if manager.simulation:
                    manager.simulation.pause()
            elif command == "RESET":
                manager.is_running = False
                manager.simulation = None
                await websocket.send_json({"type": "RESET", "tick": 0})
            elif command == "ACTION":
                try:
                    result = manager.perform(data.get("action", ""), data.get("params", {}))
                except HTTPException as exc:
                    result = {"action": data.get("action"), "success": False, "error": exc.detail}
                await websocket.send_json({"type": "ACTION_RESULT", **result})

    except WebSocketDisconnect:
        manager.is_running = False
        manager.active_websocket = None
        logger.info("Client disconnected")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("VENTURESIM_HOST", "0.0.0.0"),
        port=int(os.getenv("VENTURESIM_PORT", "8000")),
        log_level="info",
    )
