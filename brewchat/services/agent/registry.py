"""Tool registry: names, argument schemas, permitted sets and dispatch."""
import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from brewchat.core.errors import BrewChatError, InfrastructureError, ProtocolViolation
from brewchat.services.agent.model import ToolCall
from brewchat.services.agent.modes import AgentMode
from brewchat.services.ordering.models import OrderDraft
from brewchat.services.ordering.tools import OrderTools, ToolOutcome
from brewchat.services.recommendation.tools import RecommendationTools
from brewchat.services.session.models import Session, ToolResultPayload

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    ADD_ITEM = "add_item"
    MODIFY_ITEM = "modify_item"
    REMOVE_ITEM = "remove_item"
    SET_QUANTITY = "set_quantity"
    REQUEST_CONFIRMATION = "request_confirmation"
    VIEW_ORDER = "view_order"
    CANCEL_ORDER = "cancel_order"
    SUGGEST = "suggest"
    DESCRIBE_BEVERAGE = "describe_beverage"


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


class AddItemArgs(ToolArgs):
    beverage_id: str = Field(description="Beverage id from the menu, e.g. 'latte'")
    customizations: Dict[str, Any] = Field(
        default_factory=dict,
        description="Option name -> value, e.g. {\"size\": \"large\", \"milk\": \"oat\"}",
    )
    quantity: int = Field(default=1, description="How many of this drink")


class ItemPatch(ToolArgs):
    beverage_id: Optional[str] = Field(default=None, description="Replace the beverage")
    customizations: Optional[Dict[str, Any]] = Field(
        default=None, description="Options to change; others keep their current value"
    )
    quantity: Optional[int] = Field(default=None, description="New quantity")


class ModifyItemArgs(ToolArgs):
    line_index: int = Field(description="0-based line number in the current order")
    patch: ItemPatch


class LineArgs(ToolArgs):
    line_index: int = Field(description="0-based line number in the current order")


class SetQuantityArgs(ToolArgs):
    line_index: int = Field(description="0-based line number in the current order")
    quantity: int = Field(description="New quantity")


class NoArgs(ToolArgs):
    pass


class SuggestArgs(ToolArgs):
    preference_hints: List[str] = Field(
        default_factory=list,
        description="What the customer is in the mood for, e.g. [\"sweet\", \"iced\"]",
    )
    limit: int = Field(default=3, ge=1, le=10)


class DescribeBeverageArgs(ToolArgs):
    beverage_id: str = Field(description="Beverage id or name")


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    args_model: Type[ToolArgs]

    def openai_schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": _inline_refs(self.args_model.model_json_schema()),
            },
        }


def _inline_refs(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Replace $ref pointers with their $defs so every schema is self-contained."""
    defs = schema.pop("$defs", {})

    def resolve(node):
        if isinstance(node, dict):
            if "$ref" in node:
                target = defs[node["$ref"].split("/")[-1]]
                return resolve(copy.deepcopy(target))
            return {key: resolve(value) for key, value in node.items() if key != "title"}
        if isinstance(node, list):
            return [resolve(item) for item in node]
        return node

    return resolve(schema)


TOOL_SPECS: Dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in [
        ToolSpec(
            ToolName.ADD_ITEM,
            "Add a drink to the customer's order. Use ids and option values exactly as "
            "listed on the menu. Leave out options the customer did not mention.",
            AddItemArgs,
        ),
        ToolSpec(
            ToolName.MODIFY_ITEM,
            "Change a drink already in the order (beverage, options or quantity).",
            ModifyItemArgs,
        ),
        ToolSpec(ToolName.REMOVE_ITEM, "Remove a drink from the order.", LineArgs),
        ToolSpec(ToolName.SET_QUANTITY, "Set how many of a drink are ordered.", SetQuantityArgs),
        ToolSpec(
            ToolName.REQUEST_CONFIRMATION,
            "Call when the customer says the order is complete. Returns the summary "
            "to read back for approval.",
            NoArgs,
        ),
        ToolSpec(ToolName.VIEW_ORDER, "Show the current order.", NoArgs),
        ToolSpec(ToolName.CANCEL_ORDER, "Cancel the whole order at the customer's request.", NoArgs),
        ToolSpec(
            ToolName.SUGGEST,
            "Recommend drinks that match the customer's preferences.",
            SuggestArgs,
        ),
        ToolSpec(
            ToolName.DESCRIBE_BEVERAGE,
            "Look up one drink with its description, price and options.",
            DescribeBeverageArgs,
        ),
    ]
}

RECOMMENDATION_TOOLS: FrozenSet[ToolName] = frozenset({ToolName.SUGGEST, ToolName.DESCRIBE_BEVERAGE})
ORDER_TOOLS: FrozenSet[ToolName] = frozenset({
    ToolName.ADD_ITEM,
    ToolName.MODIFY_ITEM,
    ToolName.REMOVE_ITEM,
    ToolName.SET_QUANTITY,
    ToolName.REQUEST_CONFIRMATION,
    ToolName.VIEW_ORDER,
    ToolName.CANCEL_ORDER,
})

# Single source of truth for what the model may call in each mode
TOOLS_BY_MODE: Dict[AgentMode, FrozenSet[ToolName]] = {
    AgentMode.RECOMMENDATION: RECOMMENDATION_TOOLS,
    AgentMode.ORDERING: ORDER_TOOLS | RECOMMENDATION_TOOLS,
}


def tools_for_mode(mode: AgentMode) -> FrozenSet[ToolName]:
    return TOOLS_BY_MODE[mode]


@dataclass
class ToolExecution:
    """Result of dispatching one tool call."""

    result: ToolResultPayload
    draft: Optional[OrderDraft] = None


Handler = Callable[[Session, Any], Awaitable[ToolOutcome]]


class ToolExecutor:
    """Validates and dispatches the model's tool calls."""

    def __init__(self, order_tools: OrderTools, recommendation_tools: RecommendationTools):
        self.order_tools = order_tools
        self.recommendation_tools = recommendation_tools
        self._handlers: Dict[ToolName, Handler] = {
            ToolName.ADD_ITEM: self._add_item,
            ToolName.MODIFY_ITEM: self._modify_item,
            ToolName.REMOVE_ITEM: lambda s, a: order_tools.remove_item(s, a.line_index),
            ToolName.SET_QUANTITY: lambda s, a: order_tools.set_quantity(s, a.line_index, a.quantity),
            ToolName.REQUEST_CONFIRMATION: lambda s, a: order_tools.request_confirmation(s),
            ToolName.VIEW_ORDER: lambda s, a: order_tools.view_order(s),
            ToolName.CANCEL_ORDER: lambda s, a: order_tools.cancel_order(s),
            ToolName.SUGGEST: self._suggest,
            ToolName.DESCRIBE_BEVERAGE: self._describe_beverage,
        }
        missing = set(ToolName) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler registered for tools: {sorted(missing)}")

    def schemas_for(self, mode: AgentMode) -> List[Dict[str, Any]]:
        """OpenAI tool schemas permitted in ``mode``, in a stable order."""
        permitted = tools_for_mode(mode)
        return [TOOL_SPECS[name].openai_schema() for name in ToolName if name in permitted]

    def resolve(self, call: ToolCall, mode: AgentMode) -> ToolArgs:
        """
        Check that a tool call is allowed and well-formed.

        Raises:
            ProtocolViolation: unknown or out-of-mode tool, or bad arguments
        """
        try:
            name = ToolName(call.name)
        except ValueError:
            raise ProtocolViolation(f"There is no tool named '{call.name}'.")
        if name not in tools_for_mode(mode):
            raise ProtocolViolation(
                f"Tool '{call.name}' is not available in {mode.value} mode."
            )
        if call.arguments is None:
            raise ProtocolViolation(f"Arguments for '{call.name}' were not valid JSON.")
        try:
            return TOOL_SPECS[name].args_model.model_validate(call.arguments)
        except SchemaError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise ProtocolViolation(f"Invalid arguments for '{call.name}': {problems}")

    async def execute(self, call: ToolCall, session: Session) -> ToolExecution:
        """
        Run a tool call against the session.

        Domain errors become error results the model can react to.
        Infrastructure errors propagate so the turn can retry or fail.
        """
        try:
            args = self.resolve(call, session.mode)
            outcome = await self._handlers[ToolName(call.name)](session, args)
        except InfrastructureError:
            raise
        except BrewChatError as e:
            level = logging.WARNING if isinstance(e, ProtocolViolation) else logging.INFO
            logger.log(
                level,
                f"[TOOLS] {call.name} failed - Session: {session.id}, "
                f"{e.error_kind}: {e.message}",
            )
            payload = e.to_payload()
            data = {key: value for key, value in payload.items() if key not in ("errorKind", "message")}
            return ToolExecution(
                result=ToolResultPayload(
                    tool_call_id=call.id,
                    name=call.name,
                    ok=False,
                    error_kind=e.error_kind,
                    error=e.message,
                    data=data or None,
                )
            )

        return ToolExecution(
            result=ToolResultPayload(
                tool_call_id=call.id, name=call.name, ok=True, data=outcome.data
            ),
            draft=outcome.draft,
        )

    async def _add_item(self, session: Session, args: AddItemArgs) -> ToolOutcome:
        return await self.order_tools.add_item(
            session, args.beverage_id, args.customizations, args.quantity
        )

    async def _modify_item(self, session: Session, args: ModifyItemArgs) -> ToolOutcome:
        return await self.order_tools.modify_item(
            session, args.line_index, args.patch.model_dump(exclude_none=True)
        )

    async def _suggest(self, session: Session, args: SuggestArgs) -> ToolOutcome:
        suggestions = await self.recommendation_tools.suggest(
            session.owner, args.preference_hints, args.limit
        )
        return ToolOutcome(data={"suggestions": [s.model_dump() for s in suggestions]})

    async def _describe_beverage(self, session: Session, args: DescribeBeverageArgs) -> ToolOutcome:
        return ToolOutcome(data=await self.recommendation_tools.describe_beverage(args.beverage_id))
