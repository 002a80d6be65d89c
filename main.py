import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import Store, connect
from schemas import FoodIn, FoodUpdate, QuantityUpdate, FoodRequestIn, FoodRequestUpdate, UserIn
from services import FoodCatalog, FoodRequestWorkflow, Stats, UserRegistry

logger = logging.getLogger(__name__)

PORT = int(os.getenv("PORT", 3000))


def create_app(store: Optional[Store] = None) -> FastAPI:
    """Build the API around a store.

    Without a store, one is connected on startup and closed on shutdown;
    a failed connection aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = store is None
        s = connect() if owned else store
        app.state.store = s
        app.state.users = UserRegistry(s)
        app.state.foods = FoodCatalog(s)
        app.state.food_requests = FoodRequestWorkflow(s)
        app.state.stats = Stats(s)
        try:
            yield
        finally:
            if owned:
                s.close()
                logger.info("MongoDB connection closed")

    app = FastAPI(title="Plate Share API", lifespan=lifespan)

    # inside CORS, so 500s still carry the CORS headers
    @app.middleware("http")
    async def server_error(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"detail": "Server Error"})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


# ------------------------- Dependencies -------------------------

def get_users(request: Request) -> UserRegistry:
    return request.app.state.users


def get_foods(request: Request) -> FoodCatalog:
    return request.app.state.foods


def get_food_requests(request: Request) -> FoodRequestWorkflow:
    return request.app.state.food_requests


def get_stats(request: Request) -> Stats:
    return request.app.state.stats


def register_routes(app: FastAPI):

    # ------------------------- Users -------------------------

    @app.get("/users")
    def list_users(users: UserRegistry = Depends(get_users)):
        return users.list()

    @app.get("/users/role/{email}")
    def get_user_role(email: str, users: UserRegistry = Depends(get_users)):
        return {"role": users.get_role(email)}

    @app.post("/users")
    def register_user(body: UserIn, users: UserRegistry = Depends(get_users)):
        return {"id": users.register(body)}

    @app.patch("/users/admin/{user_id}")
    def make_admin(user_id: str, users: UserRegistry = Depends(get_users)):
        return users.promote_to_admin(user_id)

    @app.delete("/users/{user_id}")
    def delete_user(user_id: str, users: UserRegistry = Depends(get_users)):
        return {"deletedCount": users.delete(user_id)}

    # ------------------------- Stats -------------------------

    @app.get("/user-stats/{email}")
    def user_stats(email: str, stats: Stats = Depends(get_stats)):
        return stats.user_stats(email)

    @app.get("/admin-stats")
    def admin_stats(stats: Stats = Depends(get_stats)):
        return stats.admin_stats()

    # ------------------------- Foods -------------------------

    @app.post("/foods")
    def add_food(body: FoodIn, foods: FoodCatalog = Depends(get_foods)):
        return {"id": foods.create(body)}

    @app.get("/foods")
    def list_foods(donatorEmail: Optional[str] = None, foods: FoodCatalog = Depends(get_foods)):
        return foods.list(donatorEmail)

    @app.get("/foods/{food_id}")
    def food_details(food_id: str, foods: FoodCatalog = Depends(get_foods)):
        return foods.get(food_id)

    @app.put("/foods/{food_id}")
    def update_food(food_id: str, body: FoodUpdate, foods: FoodCatalog = Depends(get_foods)):
        return foods.update(food_id, body)

    @app.patch("/foods/{food_id}")
    def update_food_quantity(food_id: str, body: QuantityUpdate, foods: FoodCatalog = Depends(get_foods)):
        return foods.adjust_quantity(food_id, body)

    @app.delete("/foods/{food_id}")
    def delete_food(food_id: str, foods: FoodCatalog = Depends(get_foods)):
        return {"deletedCount": foods.delete(food_id)}

    # ------------------------- Food requests -------------------------

    @app.post("/food-request")
    def create_food_request(body: FoodRequestIn, food_requests: FoodRequestWorkflow = Depends(get_food_requests)):
        return {"id": food_requests.create(body)}

    @app.get("/food-request")
    def list_food_requests(food_requests: FoodRequestWorkflow = Depends(get_food_requests)):
        return food_requests.list_all()

    @app.get("/food-request/{food_id}")
    def requests_for_food(food_id: str, food_requests: FoodRequestWorkflow = Depends(get_food_requests)):
        return food_requests.list_by_food(food_id)

    @app.patch("/food-request/{request_id}")
    def update_request_status(request_id: str, body: FoodRequestUpdate, food_requests: FoodRequestWorkflow = Depends(get_food_requests)):
        return food_requests.update_status(request_id, body)

    @app.delete("/food-request/{request_id}")
    def delete_food_request(request_id: str, food_requests: FoodRequestWorkflow = Depends(get_food_requests)):
        return {"deletedCount": food_requests.delete(request_id)}

    @app.get("/my-request/{email}")
    def my_requests(email: str, food_requests: FoodRequestWorkflow = Depends(get_food_requests)):
        return food_requests.list_by_requester(email)

    # Root and health
    @app.get("/")
    def read_root():
        return {"message": f"Plate Share Server Running on {PORT}"}

    @app.get("/test")
    def test_database(request: Request):
        response = {"backend": "✅ Running", "database": "❌ Not Available"}
        try:
            request.app.state.store.ping()
            response["database"] = "✅ Connected"
        except Exception as e:
            response["database"] = f"⚠️ {str(e)[:80]}"
        return response


app = create_app()

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=PORT)
