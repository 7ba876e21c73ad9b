import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait as wait_futures
from datetime import datetime

from bson import ObjectId
from bson.errors import InvalidId

from Models.cartModel import Cart, CartStatus

logger = logging.getLogger("orders")


def _product_ids(items) -> list:
    """Resolve purchased line items to ObjectIds, dropping malformed ones."""
    ids = []
    for item in items or []:
        raw = item.get("productId") if isinstance(item, dict) else getattr(item, "product_id", None)
        try:
            ids.append(raw if isinstance(raw, ObjectId) else ObjectId(str(raw)))
        except (InvalidId, TypeError):
            continue
    return ids


def remove_purchased_items(user_id, items) -> int:
    """
    Pull purchased products out of the buyer's cart in one update and put the
    cart back to `active` with no memo. Returns the number of carts modified;
    running it twice is harmless.
    """
    if not user_id or not isinstance(items, (list, tuple)) or not items:
        return 0

    product_ids = _product_ids(items)
    if not product_ids:
        return 0

    result = Cart._get_collection().update_one(
        {"user": ObjectId(str(user_id))},
        {
            "$pull": {"items": {"product": {"$in": product_ids}}},
            "$set": {"status": CartStatus.ACTIVE.value, "updated_at": datetime.utcnow()},
            "$unset": {"memo": ""},
        },
    )
    return result.modified_count


class CartReconciler:
    """
    Runs cart clean-up after an order response is already on its way.

    Tasks execute on a small thread pool; their failures are logged to the
    `orders` logger and never reach the request that scheduled them.
    """

    def __init__(self, max_workers=2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cart-reconciler")
        self._pending = set()
        self._lock = threading.Lock()

    def submit(self, user_id, items, order_id=None):
        if not user_id or not items:
            return None

        future = self._executor.submit(self._run, user_id, list(items), order_id)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _run(self, user_id, items, order_id):
        try:
            modified = remove_purchased_items(user_id, items)
        except Exception as exc:
            logger.error(
                f"🛒 Cart reconciliation failed for user {user_id} (order {order_id}): {exc}",
                exc_info=exc
            )
            raise
        logger.info(f"🛒 Cart reconciled for user {user_id} (order {order_id}), modified={modified}")
        return modified

    def _forget(self, future):
        with self._lock:
            self._pending.discard(future)

    def wait(self, timeout=None):
        """Block until every scheduled task has finished."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait_futures(pending, timeout=timeout)

    def shutdown(self):
        self._executor.shutdown(wait=True)
