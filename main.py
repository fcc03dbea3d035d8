from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meal_grounding.logging_utils import setup_logging
from meal_grounding.routes import debug_routes, meal_plan_routes

setup_logging()

app = FastAPI(title="Grounded Meal Planner")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # your frontend origin(s)
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(meal_plan_routes.router, prefix="/meal-plans", tags=["Meal Plans"])
app.include_router(debug_routes.router, prefix="/debug", tags=["Debug"])


@app.get("/")
def read_root():
    return {"message": "Meal Planner Backend Running!"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
