from typing import Literal

from langgraph.constants import END, START
from langgraph.graph import StateGraph
from langgraph.graph.state import CompiledStateGraph

from mobile_pilot.agents.executor.executor import ExecutorNode
from mobile_pilot.agents.observer.observer import ObserverNode
from mobile_pilot.agents.reasoner.reasoner import ReasonerNode
from mobile_pilot.constants import MAX_ITERATIONS, MAX_RETRIES, NODES_PER_ITERATION
from mobile_pilot.context import PilotContext
from mobile_pilot.graph.state import State, initial_state
from mobile_pilot.utils.logger import get_logger

logger = get_logger(__name__)

Outcome = Literal["completed", "max_retries", "failed"]


def post_executor_gate(state: State) -> Literal["continue", "end"]:
    logger.info("Starting post_executor_gate")

    if state.is_complete:
        logger.info("Goal complete, ending the run")
        return "end"

    if state.retry_count >= MAX_RETRIES:
        logger.info(f"Max retries ({MAX_RETRIES}) exceeded, ending the run")
        return "end"

    if state.iteration >= MAX_ITERATIONS:
        logger.info(f"Max iterations ({MAX_ITERATIONS}) reached, ending the run")
        return "end"

    logger.info(f"Continuing to observer (iteration {state.iteration + 1}/{MAX_ITERATIONS})")
    return "continue"


def classify_outcome(state: State) -> Outcome:
    if state.is_complete:
        return "completed"
    if state.retry_count >= MAX_RETRIES:
        return "max_retries"
    return "failed"


async def get_graph(ctx: PilotContext) -> CompiledStateGraph:
    """
    Build the perceive-reason-act loop:

    START -> observer -> reasoner -> executor -> (continue) observer ...
                                              -> (end) END
    """
    graph_builder = StateGraph(State)

    ## Define nodes
    graph_builder.add_node("observer", ObserverNode(ctx))
    graph_builder.add_node("reasoner", ReasonerNode(ctx))
    graph_builder.add_node("executor", ExecutorNode(ctx))

    ## Linking nodes
    graph_builder.add_edge(START, "observer")
    graph_builder.add_edge("observer", "reasoner")
    graph_builder.add_edge("reasoner", "executor")
    graph_builder.add_conditional_edges(
        source="executor",
        path=post_executor_gate,
        path_map={
            "continue": "observer",
            "end": END,
        },
    )

    return graph_builder.compile()


async def run_graph(ctx: PilotContext, goal: str) -> State:
    graph = await get_graph(ctx)

    logger.header(f'Starting automation with goal: "{goal}"')
    result = await graph.ainvoke(
        initial_state(goal),
        config={"recursion_limit": MAX_ITERATIONS * NODES_PER_ITERATION + 1},
    )
    return State.model_validate(result)
