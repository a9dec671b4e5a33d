from taskhub.controllers.api.base import ApiController
from taskhub.repositories.category import CategoryRepository
from taskhub.schemas.category import CategoryOut


class CategoryApiController(ApiController):
    def index(self):
        rows = CategoryRepository(self.db).active()
        return self.success([CategoryOut.model_validate(row).model_dump() for row in rows])
