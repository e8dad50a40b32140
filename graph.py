from dataclasses import dataclass
from typing import Optional, TypedDict

from langgraph.graph import StateGraph, END
from loguru import logger

from generators import ErrorKind, GenerationError, MockRoadmapGenerator, RemoteRoadmapGenerator
from models import Goal, Roadmap

# --- Define the Graph State ---

class GenerationState(TypedDict, total=False):
    """Represents the shared data structure (state) passed between nodes."""
    goal: Goal
    roadmap: Optional[Roadmap]
    strategy: Optional[str]
    error_kind: Optional[str]
    error_reason: Optional[str]


@dataclass(frozen=True)
class GenerationResult:
    roadmap: Roadmap
    strategy: str
    fallback_reason: Optional[str] = None


class TotalGenerationError(RuntimeError):
    """Neither strategy produced a roadmap."""


# --- Helpers ---

def remote_guard(node_name):
    """Turns any failure of the remote node into a recorded reason instead of an exception."""
    def decorator(func):
        async def wrapper(state: GenerationState) -> GenerationState:
            try:
                return await func(state) or {}
            except GenerationError as error:
                logger.warning(f"[generation][{node_name}] {error}; falling back to the offline planner")
                return {"error_kind": error.kind.value, "error_reason": error.reason}
            except Exception as error:
                logger.exception(f"[generation][{node_name}] Unexpected error: {error}")
                return {"error_kind": ErrorKind.UPSTREAM_FAILURE.value, "error_reason": str(error)}
        return wrapper
    return decorator


def route_after_remote(state: GenerationState) -> str:
    if state.get("roadmap") is None:
        return "fallback_generator"
    return "finalizer"


# --- Build the LangGraph Workflow ---

def build_generation_graph(remote=None, fallback=None):
    """Compiles the remote -> fallback StateGraph around the given strategies."""
    remote = remote or RemoteRoadmapGenerator()
    fallback = fallback or MockRoadmapGenerator()

    @remote_guard("remote_generator")
    async def remote_generator(state: GenerationState) -> GenerationState:
        roadmap = await remote.generate(state["goal"])
        return {"roadmap": roadmap, "strategy": remote.name}

    async def fallback_generator(state: GenerationState) -> GenerationState:
        roadmap = await fallback.generate(state["goal"])
        return {"roadmap": roadmap, "strategy": fallback.name}

    def finalizer(state: GenerationState) -> GenerationState:
        roadmap = state.get("roadmap")
        if roadmap is None:
            raise TotalGenerationError("No roadmap was produced by any strategy")
        logger.info(
            f"[generation] Roadmap ready via {state.get('strategy')} strategy "
            f"({roadmap.total_weeks} weeks, {len(roadmap.milestones)} milestones)"
        )
        return {"strategy": state.get("strategy")}

    workflow = StateGraph(GenerationState)

    workflow.add_node("remote_generator", remote_generator)
    workflow.add_node("fallback_generator", fallback_generator)
    workflow.add_node("finalizer", finalizer)

    workflow.set_entry_point("remote_generator")
    workflow.add_conditional_edges(
        "remote_generator",
        route_after_remote,
        {"fallback_generator": "fallback_generator", "finalizer": "finalizer"},
    )
    workflow.add_edge("fallback_generator", "finalizer")
    workflow.add_edge("finalizer", END)

    return workflow.compile()


async def generate_roadmap(goal: Goal, remote=None, fallback=None) -> GenerationResult:
    """Runs the generation graph for one goal.

    Remote failures never escape: they are logged and the offline planner is
    used instead. Only a failing fallback raises ``TotalGenerationError``.
    """
    graph = build_generation_graph(remote=remote, fallback=fallback)
    try:
        final_state = await graph.ainvoke({"goal": goal, "roadmap": None})
    except TotalGenerationError:
        raise
    except Exception as error:
        raise TotalGenerationError(f"Roadmap generation failed: {error}") from error
    return GenerationResult(
        roadmap=final_state["roadmap"],
        strategy=final_state["strategy"],
        fallback_reason=final_state.get("error_reason"),
    )
