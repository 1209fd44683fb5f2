"""
Integration tests for GraphQL API.
"""
import json
from uuid import uuid4

from django.test import TestCase

from marketplace.infra.models import IdempotencyKey, OrderORM
from marketplace.test.helpers import make_supply, stock_of

CART_FIELDS = """
    id
    totalItems
    subtotal
    discount
    tax
    total
    items { supplyId name quantity unitPrice discount total }
"""

ORDER_FIELDS = """
    id
    status
    subtotal
    discount
    tax
    total
    trackingNumber
    shipping { address city country notes }
    items { supplyId name quantity unitPrice discount subtotal }
"""

CHECKOUT = """
    mutation Checkout($input: CheckoutInput!) {
        checkout(input: $input) { %s }
    }
""" % ORDER_FIELDS

SHIPPING_INPUT = {
    "shippingAddress": "12 Orchard Lane",
    "shippingCity": "Fresno",
    "shippingState": "CA",
    "shippingZip": "93650",
    "shippingPhone": "+1 559 555 0134",
}


class GraphQLAPITest(TestCase):
    """Integration tests for GraphQL API."""

    def setUp(self):
        """Set up test data."""
        self.user_id = uuid4()
        self.supply = make_supply(name="Widget", price="10.00", stock=20)

    def post(self, query, variables=None, user_id=None, **headers):
        if user_id is None:
            user_id = self.user_id
        if user_id:
            headers["HTTP_X_USER_ID"] = str(user_id)
        response = self.client.post(
            "/graphql/",
            data={"query": query, "variables": variables or {}},
            content_type="application/json",
            **headers,
        )
        return response, json.loads(response.content)

    def add_to_cart(self, supply_id, quantity):
        query = """
            mutation Add($supplyId: UUID!, $quantity: Int!) {
                addCartItem(supplyId: $supplyId, quantity: $quantity) { %s }
            }
        """ % CART_FIELDS
        return self.post(query, {"supplyId": str(supply_id), "quantity": quantity})

    def checkout(self, **headers):
        return self.post(CHECKOUT, {"input": SHIPPING_INPUT}, **headers)

    def test_get_returns_info(self):
        response = self.client.get("/graphql/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("message", json.loads(response.content))

    def test_cart_query_and_add_item(self):
        response, data = self.add_to_cart(self.supply.id, 12)

        self.assertEqual(response.status_code, 200)
        cart = data["data"]["addCartItem"]
        self.assertEqual(cart["totalItems"], 12)
        self.assertEqual(cart["items"][0]["discount"], "12.00")
        self.assertEqual(cart["subtotal"], "108.00")
        self.assertEqual(cart["tax"], "7.56")
        self.assertEqual(cart["total"], "115.56")

        _, data = self.post("query { cart { %s } }" % CART_FIELDS)
        self.assertEqual(data["data"]["cart"]["total"], "115.56")

    def test_checkout_mutation(self):
        self.add_to_cart(self.supply.id, 12)

        response, data = self.checkout()

        self.assertEqual(response.status_code, 200)
        order = data["data"]["checkout"]
        self.assertEqual(order["status"], "pending")
        self.assertEqual(order["total"], "115.56")
        self.assertEqual(order["shipping"]["country"], "USA")
        self.assertEqual(order["items"][0]["unitPrice"], "10.00")
        self.assertEqual(stock_of(self.supply), 8)

    def test_checkout_empty_cart_error_code(self):
        _, data = self.checkout()

        self.assertIsNone(data["data"])
        self.assertEqual(data["errors"][0]["extensions"]["code"], "EMPTY_CART")

    def test_insufficient_stock_error_details(self):
        _, data = self.add_to_cart(self.supply.id, 21)

        extensions = data["errors"][0]["extensions"]
        self.assertEqual(extensions["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(extensions["supplyId"], str(self.supply.id))
        self.assertEqual(extensions["requested"], 21)
        self.assertEqual(extensions["available"], 20)

    def test_missing_shipping_field(self):
        self.add_to_cart(self.supply.id, 1)
        shipping = dict(SHIPPING_INPUT, shippingCity=" ")

        _, data = self.post(CHECKOUT, {"input": shipping})

        self.assertEqual(data["errors"][0]["extensions"]["code"], "VALIDATION_ERROR")
        self.assertFalse(OrderORM.objects.exists())

    def test_unauthenticated(self):
        _, data = self.post("query { cart { id } }", user_id="")
        self.assertEqual(data["errors"][0]["extensions"]["code"], "UNAUTHENTICATED")

    def test_malformed_user_header(self):
        _, data = self.post("query { cart { id } }", user_id="not-a-uuid")
        self.assertEqual(data["errors"][0]["extensions"]["code"], "UNAUTHENTICATED")

    def test_invalid_json(self):
        response = self.client.post("/graphql/", data="{not json", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content)["error"]["code"], "VALIDATION_ERROR")

    def test_cancel_and_order_queries(self):
        self.add_to_cart(self.supply.id, 3)
        _, data = self.checkout()
        order_id = data["data"]["checkout"]["id"]

        _, data = self.post(
            "mutation { cancelOrder(orderId: \"%s\") { status } }" % order_id
        )
        self.assertEqual(data["data"]["cancelOrder"]["status"], "cancelled")
        self.assertEqual(stock_of(self.supply), 20)

        _, data = self.post(
            "mutation { cancelOrder(orderId: \"%s\") { status } }" % order_id
        )
        self.assertEqual(data["errors"][0]["extensions"]["code"], "INVALID_TRANSITION")
        self.assertEqual(data["errors"][0]["extensions"]["fromStatus"], "cancelled")

        _, data = self.post('query { orders(status: "cancelled") { id status } }')
        self.assertEqual([order["id"] for order in data["data"]["orders"]], [order_id])

        _, data = self.post('query { order(id: "%s") { id } }' % order_id, user_id=uuid4())
        self.assertEqual(data["errors"][0]["extensions"]["code"], "NOT_FOUND")

    def test_fulfilment_mutations(self):
        self.add_to_cart(self.supply.id, 1)
        _, data = self.checkout()
        order_id = data["data"]["checkout"]["id"]
        staff = {"user_id": uuid4(), "HTTP_X_USER_ROLE": "staff"}

        self.post('mutation { startProcessingOrder(orderId: "%s") { status } }' % order_id, **staff)
        _, data = self.post(
            'mutation { shipOrder(orderId: "%s", trackingNumber: "TRACK-9") { status trackingNumber } }'
            % order_id,
            **staff,
        )
        self.assertEqual(data["data"]["shipOrder"], {"status": "shipped", "trackingNumber": "TRACK-9"})

        _, data = self.post('mutation { deliverOrder(orderId: "%s") { status } }' % order_id, **staff)
        self.assertEqual(data["data"]["deliverOrder"]["status"], "delivered")

    def test_fulfilment_mutations_require_staff(self):
        self.add_to_cart(self.supply.id, 1)
        _, data = self.checkout()
        order_id = data["data"]["checkout"]["id"]

        for user_id, headers in (
            (uuid4(), {}),
            (uuid4(), {"HTTP_X_USER_ROLE": "customer"}),
            (self.user_id, {}),
        ):
            _, data = self.post(
                'mutation { startProcessingOrder(orderId: "%s") { status } }' % order_id,
                user_id=user_id,
                **headers,
            )
            self.assertIsNone(data["data"])
            self.assertEqual(data["errors"][0]["extensions"]["code"], "FORBIDDEN")

        _, data = self.post(
            'mutation { shipOrder(orderId: "%s", trackingNumber: "TRACK-9") { status } }' % order_id,
            user_id=uuid4(),
        )
        self.assertEqual(data["errors"][0]["extensions"]["code"], "FORBIDDEN")
        self.assertEqual(OrderORM.objects.get(id=order_id).status, "pending")

        # The owner can still cancel
        _, data = self.post('mutation { cancelOrder(orderId: "%s") { status } }' % order_id)
        self.assertEqual(data["data"]["cancelOrder"]["status"], "cancelled")

    def test_fulfilment_mutations_require_authentication(self):
        _, data = self.post(
            'mutation { deliverOrder(orderId: "%s") { status } }' % uuid4(),
            user_id="",
            HTTP_X_USER_ROLE="staff",
        )
        self.assertEqual(data["errors"][0]["extensions"]["code"], "UNAUTHENTICATED")

    def test_reorder_mutation(self):
        self.add_to_cart(self.supply.id, 5)
        _, data = self.checkout()
        order_id = data["data"]["checkout"]["id"]

        _, data = self.post(
            'mutation { reorder(orderId: "%s") { skipped cart { totalItems } } }' % order_id
        )

        self.assertEqual(data["data"]["reorder"], {"skipped": [], "cart": {"totalItems": 5}})

    def test_idempotent_checkout_replays_response(self):
        self.add_to_cart(self.supply.id, 2)

        first_response, first = self.checkout(HTTP_IDEMPOTENCY_KEY="checkout-key-1")
        second_response, second = self.checkout(HTTP_IDEMPOTENCY_KEY="checkout-key-1")

        self.assertEqual(first_response.status_code, 200)
        self.assertEqual(second_response.status_code, 200)
        self.assertEqual(first, second)
        self.assertEqual(OrderORM.objects.count(), 1)
        self.assertEqual(stock_of(self.supply), 18)
        self.assertEqual(IdempotencyKey.objects.get().operation, "CHECKOUT")

    def test_idempotency_key_reused_with_different_request(self):
        self.add_to_cart(self.supply.id, 2)
        self.checkout(HTTP_IDEMPOTENCY_KEY="checkout-key-2")

        response, data = self.post(
            CHECKOUT,
            {"input": dict(SHIPPING_INPUT, notes="Ring twice")},
            HTTP_IDEMPOTENCY_KEY="checkout-key-2",
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(data["error"]["code"], "DUPLICATE_REQUEST")

    def test_failed_checkout_is_not_stored(self):
        _, data = self.checkout(HTTP_IDEMPOTENCY_KEY="checkout-key-3")
        self.assertEqual(data["errors"][0]["extensions"]["code"], "EMPTY_CART")
        self.assertFalse(IdempotencyKey.objects.exists())

        self.add_to_cart(self.supply.id, 1)
        _, data = self.checkout(HTTP_IDEMPOTENCY_KEY="checkout-key-3")
        self.assertEqual(data["data"]["checkout"]["status"], "pending")
