"""Product and pricebook repositories. Neither carries an owner."""
from crm.database.tables import pricebooks, products
from crm.repositories.base import BaseRepository


class ProductRepository(BaseRepository):
    table = products
    resource_name = "Product"
    trackable_object_name = "Product"
    search_columns = ("name", "product_code", "family")
    owned = False


class PricebookRepository(BaseRepository):
    table = pricebooks
    resource_name = "Pricebook"
    trackable_object_name = "Pricebook"
    search_columns = ("name", "description")
    owned = False
