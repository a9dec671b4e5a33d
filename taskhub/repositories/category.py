from typing import Any

from taskhub.core.repository import Repository
from taskhub.models.category import Category


class CategoryRepository(Repository):
    model = Category

    def active(self) -> list[dict[str, Any]]:
        return self.find_all(where={"is_active": 1}, order="name ASC")
