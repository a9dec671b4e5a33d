from taskhub.controllers.api.categories import CategoryApiController
from taskhub.controllers.api.tasks import TaskApiController
from taskhub.controllers.tasks import TaskController
from taskhub.core.router import Router


def build_router() -> Router:
    # First match wins: fixed segments go before {id} patterns.
    router = Router()

    router.get("/tasks", (TaskController, "index"))
    router.get("/tasks/create", (TaskController, "create"))
    router.post("/tasks", (TaskController, "store"))
    router.get("/tasks/{id}", (TaskController, "show"))
    router.get("/tasks/{id}/edit", (TaskController, "edit"))
    router.put("/tasks/{id}", (TaskController, "update"))
    router.delete("/tasks/{id}", (TaskController, "destroy"))
    router.post("/tasks/{id}/complete", (TaskController, "complete"))

    router.get("/api/tasks", (TaskApiController, "index"))
    router.get("/api/tasks/stats", (TaskApiController, "stats"))
    router.get("/api/tasks/overdue", (TaskApiController, "overdue"))
    router.get("/api/tasks/today", (TaskApiController, "today"))
    router.get("/api/tasks/upcoming", (TaskApiController, "upcoming"))
    router.get("/api/tasks/search", (TaskApiController, "search"))
    router.get("/api/tasks/{id}", (TaskApiController, "show"))
    router.post("/api/tasks", (TaskApiController, "store"))
    router.put("/api/tasks/{id}", (TaskApiController, "update"))
    router.delete("/api/tasks/{id}", (TaskApiController, "destroy"))
    router.post("/api/tasks/{id}/complete", (TaskApiController, "complete"))

    router.get("/api/categories", (CategoryApiController, "index"))

    return router
