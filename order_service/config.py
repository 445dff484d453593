import os

#configuration
DATABASE_URL = os.getenv("DATABASE_URL", "orders.db")
PORT = int(os.getenv("PORT", "8002"))

JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key")
JWT_ALGORITHM = "HS256"

# Collaborators are disabled when their address is empty
CATALOG_URL = os.getenv("CATALOG_URL", "")
PAYMENT_URL = os.getenv("PAYMENT_URL", "")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "5.0"))

RABBIT_HOST = os.getenv("RABBIT_HOST", "")
RABBIT_PORT = int(os.getenv("RABBIT_PORT", "5672"))
RABBIT_VHOST = os.getenv("RABBIT_VHOST", "/")
RABBIT_USER = os.getenv("RABBIT_USER", "guest")
RABBIT_PASS = os.getenv("RABBIT_PASS", "guest")
RABBIT_EXCHANGE = os.getenv("RABBIT_EXCHANGE", "order_events")

ORDER_QUEUE = os.getenv("ORDER_QUEUE", "order")
PAYMENT_PENDING_QUEUE = os.getenv("PAYMENT_PENDING_QUEUE", "payment_pending")
PAYMENT_PAYED_QUEUE = os.getenv("PAYMENT_PAYED_QUEUE", "payment_payed")
PAYMENT_CANCELLED_QUEUE = os.getenv("PAYMENT_CANCELLED_QUEUE", "payment_cancelled")
