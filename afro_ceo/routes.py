"""JSON HTTP routes served next to the MCP endpoint."""

import functools
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from fastmcp import FastMCP
from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from .core.error_response import AfroCeoErrorResponse
from .core.exceptions import (
    CommandNotPermittedError,
    LLMUnavailableError,
    OperationValidationError,
    ProposalNotFoundError,
)
from .core.logging_config import get_server_logger
from .models.params import (
    ChatParams,
    DockerExecuteParams,
    GenerateProposalParams,
    GitOperationParams,
    ProposalCreateParams,
    ProposalUpdateParams,
    PublishProposalParams,
)
from .models.stack import OperationRequest, OperationResponse

if TYPE_CHECKING:
    from .server import AfroCeoServer

SERVICE_NAME = "afro-ceo-agent"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _json(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(data, status_code=status_code)


def _operation_response(response: OperationResponse) -> JSONResponse:
    status_code = 400 if response.failure == "validation" else 200
    return _json(response.model_dump(), status_code)


def _validation_response(error: ValidationError) -> JSONResponse:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return _json(
        AfroCeoErrorResponse.validation_error(field, first.get("input"), first.get("msg", "invalid")),
        400,
    )


def json_errors(handler):
    """Convert exceptions raised by a route handler into error responses."""

    @functools.wraps(handler)
    async def wrapper(self: "HttpRoutes", request: Request) -> JSONResponse:
        try:
            return await handler(self, request)
        except ValidationError as e:
            return _validation_response(e)
        except CommandNotPermittedError as e:
            return _json(AfroCeoErrorResponse.command_not_permitted(e.command, e.reason), 403)
        except OperationValidationError as e:
            return _json(
                AfroCeoErrorResponse.create_error(str(e), "validation-error", instance=request.url.path),
                400,
            )
        except ProposalNotFoundError as e:
            return _json(AfroCeoErrorResponse.proposal_not_found(str(e)), 404)
        except LLMUnavailableError as e:
            self.logger.warning("LLM unavailable", path=request.url.path, error=str(e))
            return _json(AfroCeoErrorResponse.llm_unavailable(str(e)), 503)
        except Exception as e:
            self.logger.error(
                "Unhandled error in HTTP route",
                path=request.url.path,
                method=request.method,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return _json(
                AfroCeoErrorResponse.generic_error(
                    "Internal server error", context={"path": request.url.path}
                ),
                500,
            )

    return wrapper


async def read_model(request: Request, model: type[ModelT]) -> ModelT:
    """Parse the JSON body into ``model``.

    Raises:
        OperationValidationError: If the body is not valid JSON
        ValidationError: If the body does not match the model
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise OperationValidationError("request body must be valid JSON") from e
    return model.model_validate(payload)


class HttpRoutes:
    """Route handlers bound to a server's services."""

    def __init__(self, server: "AfroCeoServer"):
        self.server = server
        self.logger = get_server_logger()

    def register(self, app: FastMCP, prefix: str) -> None:
        prefix = prefix.rstrip("/")
        app.custom_route("/health", methods=["GET"])(self.health)
        if prefix:
            app.custom_route(f"{prefix}/health", methods=["GET"])(self.health)

        routes = [
            ("/stack-status", ["GET"], self.stack_status),
            ("/modes", ["GET"], self.modes),
            ("/stack-operation", ["POST"], self.stack_operation),
            ("/git-operation", ["POST"], self.git_operation),
            ("/docker-execute", ["POST"], self.docker_execute),
            ("/service-logs/{service_id}", ["GET"], self.service_logs),
            ("/chat", ["POST"], self.chat),
            ("/status", ["GET"], self.network_status),
            ("/conversations", ["GET"], self.conversations),
            ("/proposals", ["GET", "POST"], self.proposals),
            ("/proposals/{proposal_id}", ["PUT"], self.update_proposal),
            ("/agentic-proposals", ["GET"], self.agentic_proposals),
            ("/agentic-proposals/publish", ["POST"], self.publish_proposal),
            ("/generate-proposal", ["POST"], self.generate_proposal),
        ]
        for path, methods, handler in routes:
            app.custom_route(f"{prefix}{path}", methods=methods)(handler)

    async def health(self, request: Request) -> JSONResponse:
        return _json(
            {
                "status": "healthy",
                "service": SERVICE_NAME,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @json_errors
    async def stack_status(self, request: Request) -> JSONResponse:
        status = await self.server.status_reconciler.get_status()
        return _json(status.model_dump())

    @json_errors
    async def modes(self, request: Request) -> JSONResponse:
        return _json([mode.model_dump() for mode in self.server.registry.list_modes()])

    @json_errors
    async def stack_operation(self, request: Request) -> JSONResponse:
        operation_request = await read_model(request, OperationRequest)
        return _operation_response(await self.server.dispatcher.dispatch(operation_request))

    @json_errors
    async def git_operation(self, request: Request) -> JSONResponse:
        params = await read_model(request, GitOperationParams)
        return _operation_response(await self.server.repository.git_operation(params.operation))

    @json_errors
    async def docker_execute(self, request: Request) -> JSONResponse:
        params = await read_model(request, DockerExecuteParams)
        result = await self.server.docker_cli.execute(params.command)
        return _json(result.model_dump())

    @json_errors
    async def service_logs(self, request: Request) -> JSONResponse:
        raw_tail = request.query_params.get("tail", "100")
        try:
            tail = int(raw_tail)
        except ValueError as e:
            raise OperationValidationError(f"tail must be an integer, got '{raw_tail}'") from e
        result = await self.server.docker_cli.service_logs(request.path_params["service_id"], tail)
        return _json(result.model_dump())

    @json_errors
    async def chat(self, request: Request) -> JSONResponse:
        params = await read_model(request, ChatParams)
        return _json(await self.server.chat_service.chat(params.message, params.context))

    @json_errors
    async def network_status(self, request: Request) -> JSONResponse:
        return _json(await self.server.network.check())

    @json_errors
    async def conversations(self, request: Request) -> JSONResponse:
        conversations = await self.server.chat_service.recent_conversations()
        return _json([c.model_dump() for c in conversations])

    @json_errors
    async def proposals(self, request: Request) -> JSONResponse:
        service = self.server.proposal_service
        if request.method == "POST":
            params = await read_model(request, ProposalCreateParams)
            proposal = await service.create_proposal(params)
            return _json(proposal.model_dump(), 201)
        return _json([p.model_dump() for p in await service.list_proposals()])

    @json_errors
    async def update_proposal(self, request: Request) -> JSONResponse:
        params = await read_model(request, ProposalUpdateParams)
        proposal = await self.server.proposal_service.update_proposal(
            request.path_params["proposal_id"], params
        )
        return _json(proposal.model_dump())

    @json_errors
    async def agentic_proposals(self, request: Request) -> JSONResponse:
        drafts = await self.server.proposal_service.list_agentic()
        return _json([d.model_dump() for d in drafts])

    @json_errors
    async def publish_proposal(self, request: Request) -> JSONResponse:
        params = await read_model(request, PublishProposalParams)
        proposal = await self.server.proposal_service.publish(params.id, params.create_issue)
        return _json(proposal.model_dump(), 201)

    @json_errors
    async def generate_proposal(self, request: Request) -> JSONResponse:
        params = await read_model(request, GenerateProposalParams)
        draft = await self.server.proposal_service.generate_proposal(params.topic, params.context)
        return _json(draft.model_dump(), 201)
