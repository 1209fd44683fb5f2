"""
GraphQL view with idempotency and logging support.
"""
import hashlib
import json
import logging
from uuid import UUID, uuid4

from ariadne import graphql_sync
from django.conf import settings
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from graphql import GraphQLSyntaxError, OperationDefinitionNode, OperationType, parse

from marketplace.api.middleware import ErrorHandler
from marketplace.api.schema import format_marketplace_error, schema
from marketplace.infra.models import IdempotencyKey
from marketplace.infra.pii_masker import mask_pii_in_dict

logger = logging.getLogger(__name__)

# Top-level mutation field -> idempotent operation
IDEMPOTENT_MUTATIONS = {
    "checkout": "CHECKOUT",
    "cancelOrder": "CANCEL_ORDER",
    "reorder": "REORDER",
}


class MarketplaceGraphQLView:
    """GraphQL view with idempotency and structured logging."""

    def dispatch(self, request, *args, **kwargs):
        """Handle GraphQL request with idempotency."""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        idempotency_key = request.headers.get("Idempotency-Key")
        user_id = self._parse_user_id(request.headers.get("X-User-ID"))

        log_data = {
            "request_id": request_id,
            "user_id": str(user_id) if user_id else None,
            "idempotency_key": idempotency_key[:8] + "..." if idempotency_key else None,
            "operation": "graphql",
        }
        logger.info("graphql_request", extra=mask_pii_in_dict(log_data))

        try:
            if request.method == "GET":
                return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

            try:
                data = json.loads(request.body)
            except json.JSONDecodeError:
                return ErrorHandler.error_response("VALIDATION_ERROR", "Invalid JSON")
            if not isinstance(data, dict):
                return ErrorHandler.error_response("VALIDATION_ERROR", "Request body must be a JSON object")

            operation = self._extract_operation(data.get("query", ""), data.get("operationName"))
            if idempotency_key and user_id and operation:
                response = self._dispatch_idempotent(request, data, user_id, idempotency_key, operation, request_id)
            else:
                response = self._process_graphql_request(request, data, user_id)
        except Exception as e:
            response = ErrorHandler.handle_error(e)
            logger.error(
                "graphql_error",
                extra={
                    "request_id": request_id,
                    "error": str(e),
                },
            )

        logger.info(
            "graphql_response",
            extra={
                "request_id": request_id,
                "status": response.status_code,
            },
        )
        return response

    def _dispatch_idempotent(self, request, data, user_id, idempotency_key, operation, request_id):
        """Replay the stored response for a repeated key, or process and store."""
        request_hash = self._create_request_hash(data.get("query", ""), data.get("variables") or {})

        existing = IdempotencyKey.objects.filter(
            key=idempotency_key,
            user_id=user_id,
            operation=operation,
        ).first()

        if existing:
            if existing.request_hash == request_hash:
                logger.info(
                    "idempotent_request_cached",
                    extra={
                        "request_id": request_id,
                        "idempotency_key": idempotency_key,
                        "operation": operation,
                    },
                )
                return JsonResponse(existing.response_payload, safe=False)

            logger.warning(
                "idempotency_key_conflict",
                extra={
                    "request_id": request_id,
                    "idempotency_key": idempotency_key,
                    "operation": operation,
                },
            )
            return ErrorHandler.error_response(
                "DUPLICATE_REQUEST",
                "Idempotency key already used with different request",
            )

        response = self._process_graphql_request(request, data, user_id)

        # Failed attempts are not stored, so the client may retry with the same key
        response_data = json.loads(response.content)
        if response.status_code == 200 and not response_data.get("errors"):
            try:
                with transaction.atomic():
                    IdempotencyKey.objects.create(
                        key=idempotency_key,
                        user_id=user_id,
                        operation=operation,
                        request_hash=request_hash,
                        response_payload=response_data,
                    )
            except IntegrityError:
                logger.warning(
                    "failed_to_save_idempotency",
                    extra={
                        "request_id": request_id,
                        "idempotency_key": idempotency_key,
                    },
                )
        return response

    def _parse_user_id(self, raw: str | None) -> UUID | None:
        if not raw:
            return None
        try:
            return UUID(raw)
        except (ValueError, TypeError):
            logger.warning("invalid_user_id", extra={"user_id": raw[:8] + "..."})
            return None

    def _create_request_hash(self, query: str, variables: dict) -> str:
        """Create hash of request for deduplication."""
        content = json.dumps({"query": query, "variables": variables}, sort_keys=True)
        return hashlib.sha256(content.encode()).hexdigest()

    def _extract_operation(self, query: str, operation_name: str | None) -> str | None:
        """Idempotent operation named by the mutation's top-level field, if any."""
        try:
            document = parse(query)
        except (GraphQLSyntaxError, TypeError):
            return None

        for definition in document.definitions:
            if not isinstance(definition, OperationDefinitionNode):
                continue
            if operation_name and (definition.name is None or definition.name.value != operation_name):
                continue
            if definition.operation != OperationType.MUTATION:
                return None
            for selection in definition.selection_set.selections:
                name = getattr(selection, "name", None)
                if name is not None and name.value in IDEMPOTENT_MUTATIONS:
                    return IDEMPOTENT_MUTATIONS[name.value]
            return None
        return None

    def _process_graphql_request(self, request, data: dict, user_id: UUID | None):
        """Execute GraphQL query."""
        success, result = graphql_sync(
            schema,
            data,
            context_value={
                "request": request,
                "user_id": user_id,
                "user_role": request.headers.get("X-User-Role"),
            },
            error_formatter=format_marketplace_error,
            debug=settings.DEBUG,
        )
        status_code = 200 if success else 400
        return JsonResponse(result, status=status_code)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = MarketplaceGraphQLView()
    return view.dispatch(request)
