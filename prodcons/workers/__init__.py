from .worker import Role, Worker, WorkerState, random_item

__all__ = ["Role", "Worker", "WorkerState", "random_item"]
