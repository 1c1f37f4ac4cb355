import math

from core.errors import InvalidInput


class PaginatePage:
    def __init__(self, per_page: int):
        self.per_page = per_page

    def check_page(self, page: int):
        if page < 1:
            raise InvalidInput("Page numbers start at 1", field="page")

    def offset(self, page: int) -> int:
        return (page - 1) * self.per_page

    def total_pages(self, total_items: int) -> int:
        return math.ceil(total_items / self.per_page)
