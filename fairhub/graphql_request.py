from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from fairhub.errors import GraphQLRequestFailure
from models.hub_nodes import PageInfo

R = TypeVar("R")


class APIRequest:
    """
    Anything the endpoint service can send: it knows how to build the HTTP
    call for a service and how to decode the JSON that comes back.
    Cursored requests carry the opaque end_cursor of the page to continue from.
    """

    end_cursor: Optional[str] = None

    def build(self, service: Any) -> Tuple[str, str, Optional[Dict[str, Any]]]:
        raise NotImplementedError

    def decode(self, payload: Any) -> Any:
        raise NotImplementedError


class CursoredResponse:
    """
    Page capability of a decoded response. Subclasses return the connection's
    page info and how many elements this page holds.
    """

    def _page(self) -> Tuple[Optional[PageInfo], int]:
        return None, 0

    @property
    def element_count(self) -> int:
        return self._page()[1]

    @property
    def has_next_page(self) -> bool:
        info = self._page()[0]
        return bool(info and info.has_next_page)

    @property
    def end_cursor(self) -> Optional[str]:
        info = self._page()[0]
        return info.end_cursor if info else None


# ----------------------------
# GraphQL
# ----------------------------

@dataclass
class GraphQLErrorNode:
    message: str
    type: Optional[str] = None
    path: Optional[List[Any]] = None
    documentation_url: Optional[str] = None


@dataclass
class GraphQLResponse(Generic[R]):
    """
    Either the decoded data of a GraphQL request or the errors reported for it.
    The page capability passes through to the success branch; a failure has no
    elements and no further pages.
    """
    result: Optional[R] = None
    errors: List[GraphQLErrorNode] = field(default_factory=list)

    @classmethod
    def decode(cls, payload: Any, response_type: Type[R]) -> "GraphQLResponse[R]":
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

        raw_errors = payload.get("errors")
        if raw_errors:
            errors = [
                GraphQLErrorNode(message=str(e.get("message", "")), type=e.get("type"), path=e.get("path"))
                for e in raw_errors if isinstance(e, dict)
            ]
            return cls(errors=errors)

        if payload.get("data") is not None:
            return cls(result=response_type.from_json(payload["data"]))

        if "message" in payload:
            # single error shape: {"message": ..., "documentation_url": ...}
            return cls(errors=[GraphQLErrorNode(message=str(payload["message"]),
                                                documentation_url=payload.get("documentation_url"))])

        raise ValueError("Response has neither data nor errors")

    @property
    def is_success(self) -> bool:
        return self.result is not None and not self.errors

    def infer(self) -> R:
        if self.is_success:
            return self.result
        raise GraphQLRequestFailure([e.message for e in self.errors],
                                    [e.type for e in self.errors if e.type])

    @property
    def element_count(self) -> int:
        return self.result.element_count if self.is_success else 0

    @property
    def has_next_page(self) -> bool:
        return self.result.has_next_page if self.is_success else False

    @property
    def end_cursor(self) -> Optional[str]:
        return self.result.end_cursor if self.is_success else None


class GraphQLRequest(APIRequest):
    """
    A GraphQL query or mutation: an opaque template plus its named variables.
    """

    query: ClassVar[str] = ""
    response_type: ClassVar[type] = dict

    def variables(self) -> Dict[str, Any]:
        return {}

    def build(self, service: Any) -> Tuple[str, str, Optional[Dict[str, Any]]]:
        return "POST", service.graphql_url, {"query": self.query, "variables": self.variables()}

    def decode(self, payload: Any) -> GraphQLResponse:
        return GraphQLResponse.decode(payload, self.response_type)
