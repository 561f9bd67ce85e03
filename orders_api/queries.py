"""
queries.py — SQL statements sent to the query proxy

All statements use positional placeholders ($1, $2, ...) and are sent together
with an ordered list of bind values. Services refer to these constants only,
so the set of query shapes the store has to serve is listed here in one place.
"""

_PRODUCT_COLUMNS = """
        p.id,
        p.title,
        p.subtitle,
        p.price,
        p.price_numeric,
        p.image,
        p.category,
        p.type,
        p.badge,
        COALESCE(i.stock_quantity, 0) AS stock_quantity,
        COALESCE(i.reserved_quantity, 0) AS reserved_quantity,
        i.updated_at"""

LIST_PRODUCTS = f"""
    SELECT{_PRODUCT_COLUMNS}
    FROM products p
    LEFT JOIN inventory i ON p.id = i.product_id
    ORDER BY p.id
"""

PRODUCT_WITH_INVENTORY = f"""
    SELECT{_PRODUCT_COLUMNS}
    FROM products p
    LEFT JOIN inventory i ON p.id = i.product_id
    WHERE p.id = $1
"""

# Conditional decrement: no row comes back when the stock is insufficient.
DECREMENT_STOCK = """
    UPDATE inventory
    SET stock_quantity = stock_quantity - $1,
        updated_at = CURRENT_TIMESTAMP
    WHERE product_id = $2 AND stock_quantity >= $1
    RETURNING stock_quantity
"""

RESTORE_STOCK = """
    UPDATE inventory
    SET stock_quantity = stock_quantity + $1,
        updated_at = CURRENT_TIMESTAMP
    WHERE product_id = $2
    RETURNING stock_quantity
"""

INSERT_ORDER = """
    INSERT INTO orders (customer_name, product_id, quantity, unit_price, total_price)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING id, order_date
"""

_ORDER_COLUMNS = """
        o.id,
        o.customer_name,
        p.title AS product_title,
        p.subtitle AS product_subtitle,
        p.price,
        o.quantity,
        o.unit_price,
        o.total_price,
        o.order_date,
        o.status"""

LIST_ORDERS = f"""
    SELECT{_ORDER_COLUMNS}
    FROM orders o
    JOIN products p ON o.product_id = p.id
    ORDER BY o.order_date DESC
    LIMIT $1
"""

CUSTOMER_ORDERS = f"""
    SELECT{_ORDER_COLUMNS}
    FROM orders o
    JOIN products p ON o.product_id = p.id
    WHERE o.customer_name = $1
    ORDER BY o.order_date DESC
"""

RESET_INVENTORY = """
    UPDATE inventory
    SET stock_quantity = $1,
        reserved_quantity = 0,
        updated_at = CURRENT_TIMESTAMP
"""
