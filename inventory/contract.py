"""Table and address constants shared by the store, router and HTTP layer."""
import os

TABLE_NAME = "products"

COLUMN_ID = "id"
COLUMN_NAME = "name"
COLUMN_PRICE = "price"
COLUMN_QUANTITY = "quantity"
COLUMN_SUPPLIER_NAME = "supplier_name"
COLUMN_SUPPLIER_CONTACT = "supplier_contact"

# Fields callers may filter and sort on
PRODUCT_FIELDS = (
    COLUMN_ID,
    COLUMN_NAME,
    COLUMN_PRICE,
    COLUMN_QUANTITY,
    COLUMN_SUPPLIER_NAME,
    COLUMN_SUPPLIER_CONTACT,
)

CONTENT_SCHEME = "content"
CONTENT_AUTHORITY = os.getenv("INVENTORY_AUTHORITY", "com.example.inventory")
PATH_PRODUCTS = "products"
CONTENT_URI = f"{CONTENT_SCHEME}://{CONTENT_AUTHORITY}/{PATH_PRODUCTS}"

CONTENT_LIST_TYPE = f"vnd.inventory.dir/{CONTENT_AUTHORITY}.{PATH_PRODUCTS}"
CONTENT_ITEM_TYPE = f"vnd.inventory.item/{CONTENT_AUTHORITY}.{PATH_PRODUCTS}"

# INTEGER columns are int4 on PostgreSQL; ids, quantities and price cents must fit
MAX_COLUMN_INT = 2**31 - 1
MIN_COLUMN_INT = -(2**31)
