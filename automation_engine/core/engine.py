"""
Graph execution engine

Sequential, in-memory executor that:
- Finds the single trigger and derives a topological order from it
- Resolves each node to a provider adapter and interpolates its config
- Prunes branches using route/filter decisions
- Runs iterator bodies once per item with a LoopFrame stack
- Records an append-only execution log and returns a RunResult envelope

A run never raises: configuration problems, node failures, deadline
exhaustion and unexpected errors all come back as a failed RunResult.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from pydantic import ValidationError

from automation_engine.config import Settings, get_settings
from automation_engine.core.context import ExecutionContext, LoopFrame
from automation_engine.core.exceptions import (
    CredentialError,
    DeadlineExceeded,
    GraphError,
    ResolutionError,
)
from automation_engine.core.graph import ExecutionGraph
from automation_engine.core.interpolation import find_unresolved, interpolate
from automation_engine.core.recorder import ExecutionRecorder
from automation_engine.core.resolver import PROVIDER_FLOW, NodeResolution, resolve
from automation_engine.models import (
    CredentialBundle,
    Edge,
    ErrorKind,
    IterationBundle,
    IterationTestResult,
    Node,
    NodeExecutionStatus,
    NodeTestResult,
    OperationResult,
    RunResult,
    WorkflowGraph,
)

logger = logging.getLogger(__name__)

CredentialLookup = Callable[[str], Optional[CredentialBundle]]
Credentials = Union[Mapping[str, Any], CredentialLookup, None]

ITERATE_OPERATION = "flow.iterate"
BOUNDARY_OPERATIONS = frozenset({"flow.endIterate", "flow.aggregate"})

NO_EXECUTABLE_NODES = "No executable nodes in workflow"
UNEXPECTED_FAILURE = "Workflow execution failed unexpectedly"


@dataclass
class _RunState:
    graph: ExecutionGraph
    order: List[str]
    resolutions: Dict[str, Optional[NodeResolution]]
    context: ExecutionContext
    recorder: ExecutionRecorder
    credential_errors: Dict[str, str] = field(default_factory=dict)
    # node id -> branches of its latest successful execution
    decisions: Dict[str, Optional[List[str]]] = field(default_factory=dict)
    last_output: Any = None
    # iterator whose per-item log slices are captured into ``bundles``
    tested_iterator: Optional[str] = None
    bundles: List[IterationBundle] = field(default_factory=list)


class ExecutionEngine:
    def __init__(
        self,
        adapters: Optional[Mapping[str, Any]] = None,
        settings: Optional[Settings] = None,
        preserve_placeholder_types: Optional[bool] = None,
    ):
        self.settings = settings or get_settings()
        if adapters is None:
            from automation_engine.runners import build_default_adapters

            adapters = build_default_adapters(self.settings)
        self.adapters = dict(adapters)
        if preserve_placeholder_types is None:
            preserve_placeholder_types = self.settings.preserve_placeholder_types
        self.preserve_placeholder_types = preserve_placeholder_types

    # Public API

    def run(
        self,
        graph: Union[WorkflowGraph, Mapping[str, Any]],
        trigger_input: Optional[Dict[str, Any]] = None,
        credentials: Credentials = None,
        *,
        workflow_id: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
    ) -> RunResult:
        execution_id = str(uuid.uuid4())
        recorder = ExecutionRecorder(execution_id)
        if deadline_seconds is None:
            deadline_seconds = self.settings.max_run_seconds
        if deadline_seconds is not None and deadline_seconds <= 0:
            deadline_seconds = None

        logger.info(f"🚀 Starting run {execution_id} (workflow={workflow_id})")
        try:
            result = self._run(
                graph,
                trigger_input,
                credentials,
                recorder,
                workflow_id=workflow_id,
                execution_id=execution_id,
                deadline_seconds=deadline_seconds,
            )
        except Exception:
            logger.exception(f"💥 Run {execution_id} failed unexpectedly")
            result = recorder.finalize(
                False, error=UNEXPECTED_FAILURE, error_kind=ErrorKind.INTERNAL
            )

        if result.success:
            logger.info(f"✅ Run {execution_id} completed ({len(recorder)} log entries)")
        else:
            logger.info(f"❌ Run {execution_id} failed: {result.error}")
        return result

    def test_node(
        self,
        node: Union[Node, Mapping[str, Any]],
        trigger_input: Optional[Dict[str, Any]] = None,
        node_outputs: Union[Mapping[str, Any], Iterable[Mapping[str, Any]], None] = None,
        credentials: Credentials = None,
    ) -> NodeTestResult:
        """Run one node against mock upstream outputs, outside any graph.

        ``node_outputs`` is either ``{nodeId: output}`` or a list of
        ``{"nodeId", "output"}`` items; ``previous`` is the last one given.
        """
        if not isinstance(node, Node):
            node = Node.model_validate(node)
        resolution = _resolve_node(node)

        credential_errors: Dict[str, str] = {}
        bundles: Dict[str, CredentialBundle] = {}
        if resolution is not None and resolution.requires_credentials:
            bundles = _collect_credentials(credentials, [resolution.provider], credential_errors)
        context = ExecutionContext(trigger_input, bundles)
        for mock_id, mock_output in _iter_mock_outputs(node_outputs):
            context.record_output(mock_id, OperationResult.ok(mock_output))

        metadata: Dict[str, Any] = {"nodeId": node.id, "nodeType": node.type}
        warnings = [f"Unresolved reference {ref}" for ref in find_unresolved(node.data, context)]

        logger.info(f"🧪 Testing node {node.id} (type={node.type})")
        try:
            if resolution is None:
                raise ResolutionError(_unsupported_message(node))
            metadata.update(provider=resolution.provider, operation=resolution.operation)
            _config, result = self._invoke(node, resolution, context, credential_errors)
        except ResolutionError as e:
            return NodeTestResult(success=False, error=str(e), warnings=warnings, metadata=metadata)

        metadata["durationMs"] = result.metadata.duration_ms
        if result.metadata.extra:
            metadata.update(result.metadata.extra)
        if not result.success:
            return NodeTestResult(
                success=False,
                error=result.error.message if result.error else "Node failed",
                warnings=warnings,
                metadata=metadata,
            )
        return NodeTestResult(success=True, output=result.output, warnings=warnings, metadata=metadata)

    def test_iteration(
        self,
        graph: Union[WorkflowGraph, Mapping[str, Any]],
        iterator_id: str,
        trigger_input: Optional[Dict[str, Any]] = None,
        node_outputs: Union[Mapping[str, Any], Iterable[Mapping[str, Any]], None] = None,
        credentials: Credentials = None,
    ) -> IterationTestResult:
        """Run one iterator, its body once per item, then its boundary.

        Nothing upstream of the iterator executes: ``node_outputs`` stands in
        for those nodes as in :meth:`test_node`. The first failing node stops
        the loop, and the result carries the log of every pass so far.
        """
        if not isinstance(graph, WorkflowGraph):
            try:
                graph = WorkflowGraph.model_validate(graph)
            except ValidationError as e:
                return IterationTestResult(success=False, error=_validation_message(e))
        iterator = graph.get_node(iterator_id)
        if iterator is None:
            return IterationTestResult(success=False, error=f"Iterator node {iterator_id} not found")

        exec_graph = ExecutionGraph(graph)
        try:
            order = exec_graph.execution_order(iterator_id)
        except GraphError as e:
            return IterationTestResult(success=False, error=str(e))
        resolutions = {node_id: _resolve_node(exec_graph.nodes[node_id]) for node_id in order}
        resolution = resolutions.get(iterator_id)
        if resolution is None or resolution.operation != ITERATE_OPERATION:
            return IterationTestResult(success=False, error=f"Node {iterator_id} is not an iterator")

        providers = sorted(
            {r.provider for r in resolutions.values() if r is not None and r.requires_credentials}
        )
        credential_errors: Dict[str, str] = {}
        bundles = _collect_credentials(credentials, providers, credential_errors)
        deadline_seconds = self.settings.max_run_seconds
        context = ExecutionContext(
            trigger_input,
            bundles,
            execution_id=f"test-iteration-{uuid.uuid4()}",
            deadline_seconds=deadline_seconds if deadline_seconds and deadline_seconds > 0 else None,
        )
        for mock_id, mock_output in _iter_mock_outputs(node_outputs):
            context.record_output(mock_id, OperationResult.ok(mock_output))

        recorder = ExecutionRecorder(context.execution_id)
        state = _RunState(
            graph=exec_graph,
            order=order,
            resolutions=resolutions,
            context=context,
            recorder=recorder,
            credential_errors=credential_errors,
            last_output=context.previous_output,
            tested_iterator=iterator_id,
        )
        body, boundaries = self._loop_scope(iterator_id, state)
        if not any(node_id in resolutions for node_id in body):
            return IterationTestResult(
                success=False, error="No nodes found between the iterator and its end"
            )

        logger.info(f"🧪 Testing iteration {iterator_id} ({len(body)} body node(s))")
        iterator_output = None
        try:
            iterator_result = self._execute_node(iterator, state)
            if not iterator_result.success:
                return IterationTestResult(
                    success=False,
                    error=iterator_result.error.message if iterator_result.error else "Iterator failed",
                    execution_log=recorder.entries,
                )
            iterator_output = iterator_result.output
            failure = self._run_loop(iterator_id, iterator_result, body, boundaries, state)
        except DeadlineExceeded as e:
            logger.warning(f"⏱️ {e}")
            return IterationTestResult(
                success=False,
                error=str(e),
                iterator_output=iterator_output,
                iteration_results=state.bundles,
                execution_log=recorder.entries,
            )

        total = len(iterator_output.get("items") or []) if isinstance(iterator_output, dict) else 0
        if failure is None:
            return IterationTestResult(
                success=True,
                output=state.last_output,
                iterator_output=iterator_output,
                total_bundles=total,
                iteration_results=state.bundles,
                execution_log=recorder.entries,
            )

        error = failure
        stopped_at: Optional[Dict[str, Any]] = None
        failed = next(
            (e for e in reversed(recorder.entries) if e.status == NodeExecutionStatus.ERROR), None
        )
        if failed is not None:
            stopped_at = {"nodeId": failed.node_id, "nodeType": failed.node_type}
            if state.bundles and not state.bundles[-1].succeeded:
                index = state.bundles[-1].bundle_index
                stopped_at["bundleIndex"] = index
                error = f"Iteration stopped at bundle {index + 1}/{total}: {failure}"
        return IterationTestResult(
            success=False,
            error=error,
            iterator_output=iterator_output,
            total_bundles=total,
            iteration_results=state.bundles,
            stopped_at=stopped_at,
            execution_log=recorder.entries,
        )

    # Run

    def _run(
        self,
        graph: Union[WorkflowGraph, Mapping[str, Any]],
        trigger_input: Optional[Dict[str, Any]],
        credentials: Credentials,
        recorder: ExecutionRecorder,
        *,
        workflow_id: Optional[str],
        execution_id: str,
        deadline_seconds: Optional[float],
    ) -> RunResult:
        if not isinstance(graph, WorkflowGraph):
            try:
                graph = WorkflowGraph.model_validate(graph)
            except ValidationError as e:
                logger.warning(f"❌ Invalid workflow graph: {e}")
                return recorder.finalize(
                    False, error=_validation_message(e), error_kind=ErrorKind.CONFIGURATION
                )
        exec_graph = ExecutionGraph(graph)

        try:
            trigger = exec_graph.find_trigger()
            order = exec_graph.execution_order(trigger.id)
        except GraphError as e:
            logger.warning(f"❌ Invalid workflow graph: {e}")
            return recorder.finalize(False, error=str(e), error_kind=ErrorKind.CONFIGURATION)
        if not order:
            return recorder.finalize(
                False, error=NO_EXECUTABLE_NODES, error_kind=ErrorKind.CONFIGURATION
            )

        resolutions = {node_id: _resolve_node(exec_graph.nodes[node_id]) for node_id in order}
        providers = sorted(
            {r.provider for r in resolutions.values() if r is not None and r.requires_credentials}
        )
        credential_errors: Dict[str, str] = {}
        bundles = _collect_credentials(credentials, providers, credential_errors)

        context = ExecutionContext(
            trigger_input,
            bundles,
            workflow_id=workflow_id,
            execution_id=execution_id,
            deadline_seconds=deadline_seconds,
        )
        state = _RunState(
            graph=exec_graph,
            order=order,
            resolutions=resolutions,
            context=context,
            recorder=recorder,
            credential_errors=credential_errors,
            last_output=context.trigger_input,
        )
        logger.info(f"📋 Execution order: {' -> '.join(order)}")

        try:
            failure = self._execute_nodes(order, state)
        except DeadlineExceeded as e:
            logger.warning(f"⏱️ {e}")
            return recorder.finalize(
                False, error=str(e), error_kind=ErrorKind.DEADLINE_EXCEEDED
            )
        if failure is not None:
            return recorder.finalize(False, error=failure, error_kind=ErrorKind.NODE)
        return recorder.finalize(True, output=state.last_output)

    def _execute_nodes(self, node_ids: List[str], state: _RunState) -> Optional[str]:
        """Run ``node_ids`` in order. Returns the run error on the first failure."""
        consumed: Set[str] = set()
        for node_id in node_ids:
            if node_id in consumed:
                continue
            node = state.graph.nodes[node_id]

            if not node.is_trigger and not self._has_live_input(node_id, state):
                logger.info(f"⏭️ Skipping {node_id}: no live incoming edge")
                state.recorder.record(node_id, node.type, NodeExecutionStatus.SKIPPED)
                continue

            result = self._execute_node(node, state)
            if not result.success:
                return _failure_message(node, result)

            resolution = state.resolutions.get(node_id)
            if resolution is not None and resolution.operation == ITERATE_OPERATION:
                body, boundaries = self._loop_scope(node_id, state)
                consumed.update(body)
                consumed.update(boundaries)
                failure = self._run_loop(node_id, result, body, boundaries, state)
                if failure is not None:
                    return failure
        return None

    def _execute_node(self, node: Node, state: _RunState) -> OperationResult:
        context = state.context
        if context.deadline_exceeded():
            raise DeadlineExceeded(
                f"Workflow execution exceeded time limit of {_format_seconds(context.deadline_seconds)}s"
            )

        resolution = state.resolutions.get(node.id)
        log_input = {
            "triggerInput": context.trigger_input,
            "previousOutput": context.previous_output,
            "config": node.data,
        }
        logger.info(f"▶️ Executing node {node.id} (type={node.type})")

        try:
            if resolution is None:
                raise ResolutionError(_unsupported_message(node))
            config, result = self._invoke(node, resolution, context, state.credential_errors)
        except ResolutionError as e:
            result = OperationResult.fail(str(e), code="UNSUPPORTED_NODE")
            config = node.data
        log_input["config"] = config

        context.record_output(node.id, result)
        if result.success:
            state.decisions[node.id] = result.branches
            state.last_output = result.output
            state.recorder.record(
                node.id,
                node.type,
                NodeExecutionStatus.SUCCESS,
                input=log_input,
                output=result.output,
            )
            logger.info(f"✅ Node {node.id} completed")
        else:
            message = result.error.message if result.error else "Unknown error"
            state.recorder.record(
                node.id,
                node.type,
                NodeExecutionStatus.ERROR,
                input=log_input,
                error=message,
            )
            logger.error(f"❌ Node {node.id} failed: {message}")
        return result

    def _invoke(
        self,
        node: Node,
        resolution: NodeResolution,
        context: ExecutionContext,
        credential_errors: Mapping[str, str],
    ) -> Tuple[Dict[str, Any], OperationResult]:
        """Interpolate config, validate it, look up credentials and call the adapter."""
        config = self._prepare_config(node.data, resolution, context)

        missing = resolution.missing_fields(config)
        if missing:
            return config, OperationResult.fail(
                f"Missing required configuration: {', '.join(missing)}",
                code="VALIDATION_ERROR",
                provider=resolution.provider,
                operation=resolution.operation,
            )

        adapter = self.adapters.get(resolution.provider)
        if adapter is None:
            raise ResolutionError(f"No adapter registered for provider: {resolution.provider}")

        credential = None
        if resolution.requires_credentials:
            try:
                credential = _credential_for(resolution.provider, context, credential_errors)
            except CredentialError as e:
                return config, OperationResult.fail(
                    str(e),
                    code="MISSING_CREDENTIALS",
                    provider=resolution.provider,
                    operation=resolution.operation,
                )

        return config, adapter.execute(resolution.operation, config, credential, context)

    def _prepare_config(
        self, data: Mapping[str, Any], resolution: NodeResolution, context: ExecutionContext
    ) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key in resolution.raw_fields:
                config[key] = value
            else:
                config[key] = interpolate(value, context, self.preserve_placeholder_types)
        return config

    # Branching

    def _edge_live(self, edge: Edge, state: _RunState) -> bool:
        source = state.graph.nodes[edge.source]
        if source.is_drop:
            return self._has_live_input(edge.source, state)
        if edge.source not in state.decisions:
            return False
        branches = state.decisions[edge.source]
        if branches is None:
            return True
        if edge.source_handle is None:
            return bool(branches)
        return edge.source_handle in branches

    def _has_live_input(self, node_id: str, state: _RunState) -> bool:
        return any(self._edge_live(edge, state) for edge in state.graph.predecessors(node_id))

    def _reached(self, node_id: str, state: _RunState) -> bool:
        if state.graph.nodes[node_id].is_drop:
            return self._has_live_input(node_id, state)
        return node_id in state.decisions

    # Looping

    def _loop_scope(self, iterator_id: str, state: _RunState) -> Tuple[List[str], List[str]]:
        """Body and boundary nodes of the loop opened by ``iterator_id``.

        The body stops at the first endIterate/aggregate on each path;
        nested iterators must be closed before the outer boundary counts.
        """
        body: Set[str] = set()
        boundaries: Set[str] = set()
        seen: Set[Tuple[str, int]] = set()
        queue = deque((edge.target, 0) for edge in state.graph.successors(iterator_id))
        while queue:
            node_id, depth = queue.popleft()
            if (node_id, depth) in seen:
                continue
            seen.add((node_id, depth))
            resolution = state.resolutions.get(node_id)
            operation = resolution.operation if resolution is not None else None
            if operation in BOUNDARY_OPERATIONS:
                if depth == 0:
                    boundaries.add(node_id)
                    continue
                depth -= 1
            elif operation == ITERATE_OPERATION:
                depth += 1
            body.add(node_id)
            for edge in state.graph.successors(node_id):
                queue.append((edge.target, depth))

        body -= boundaries
        in_order = set(state.order)
        # drop nodes stay in the body for liveness but are never executed
        ordered_body = [n for n in state.order if n in body]
        ordered_body += sorted(n for n in body if n not in in_order)
        return ordered_body, [n for n in state.order if n in boundaries]

    def _run_loop(
        self,
        iterator_id: str,
        iterator_result: OperationResult,
        body: List[str],
        boundaries: List[str],
        state: _RunState,
    ) -> Optional[str]:
        context = state.context
        output = iterator_result.output if isinstance(iterator_result.output, dict) else {}
        items = list(output.get("items") or [])
        item_variable = output.get("itemVariable") or "item"
        index_variable = output.get("indexVariable") or "index"
        executable = [n for n in body if n in state.resolutions]

        frame = LoopFrame(node_id=iterator_id, items=items)
        context.push_frame(frame)
        logger.info(f"🔁 Iterating {iterator_id} over {len(items)} item(s)")
        try:
            if not items:
                for node_id in executable:
                    node = state.graph.nodes[node_id]
                    state.recorder.record(node_id, node.type, NodeExecutionStatus.SKIPPED)
            for index, item in enumerate(items):
                frame.cursor = index
                context.set_variable(item_variable, item)
                context.set_variable(index_variable, index)
                context.set_previous_output(iterator_result.output)
                for node_id in body:
                    state.decisions.pop(node_id, None)

                start = len(state.recorder)
                failure = self._execute_nodes(executable, state)
                if iterator_id == state.tested_iterator:
                    state.bundles.append(
                        IterationBundle(
                            bundle_index=index,
                            item=item,
                            node_results=state.recorder.entries[start:],
                        )
                    )
                if failure is not None:
                    return failure
                if not executable:
                    frame.aggregated_results.append(item)
                    continue
                completed, collected = self._iteration_output(iterator_id, body, boundaries, state)
                if completed:
                    frame.aggregated_results.append(collected)

            # Boundaries run once, after the last iteration
            for node_id in boundaries:
                node = state.graph.nodes[node_id]
                result = self._execute_node(node, state)
                if not result.success:
                    return _failure_message(node, result)
        finally:
            context.pop_frame()
        return None

    def _iteration_output(
        self, iterator_id: str, body: List[str], boundaries: List[str], state: _RunState
    ) -> Tuple[bool, Any]:
        """Whether the iteration reached the loop exit, and the value it contributes.

        With a boundary, the value is the output of the body node feeding it
        through a live edge; without one, the last executed output.
        """
        context = state.context
        boundary_set = set(boundaries)
        exits = [
            edge
            for source in body
            for edge in state.graph.successors(source)
            if edge.target in boundary_set and edge.source != iterator_id
        ]
        if exits:
            live_sources = {edge.source for edge in exits if self._edge_live(edge, state)}
            if not live_sources:
                return False, None
            for node_id in reversed(body):
                if node_id in live_sources and context.has_output(node_id):
                    return True, context.get_output(node_id)
            return True, context.previous_output
        body_set = set(body)
        sinks = [
            n
            for n in body
            if not any(e.target in body_set for e in state.graph.successors(n))
        ]
        return any(self._reached(n, state) for n in sinks), context.previous_output


def _node_operation(node: Node) -> Optional[str]:
    operation = node.operation or node.data.get("operation")
    return operation if isinstance(operation, str) and operation else None


def _resolve_node(node: Node) -> Optional[NodeResolution]:
    return resolve(node.type, _node_operation(node), node.data)


def _collect_credentials(
    credentials: Credentials, providers: Iterable[str], errors: Dict[str, str]
) -> Dict[str, CredentialBundle]:
    """Resolve every needed provider once, up front."""
    bundles: Dict[str, CredentialBundle] = {}
    if credentials is None:
        return bundles
    for provider in providers:
        try:
            if callable(credentials):
                value = credentials(provider)
            else:
                value = credentials.get(provider)
            if value is None:
                continue
            if not isinstance(value, CredentialBundle):
                value = CredentialBundle.model_validate(value)
            bundles[provider] = value
        except Exception as e:
            logger.warning(f"🔑 Credential lookup failed for provider {provider}: {e}")
            errors[provider] = f"Credential lookup failed for provider {provider}: {e}"
    return bundles


def _credential_for(
    provider: str, context: ExecutionContext, errors: Mapping[str, str]
) -> Optional[CredentialBundle]:
    if provider in errors:
        raise CredentialError(errors[provider])
    return context.get_credential(provider)


def _iter_mock_outputs(node_outputs: Any) -> List[Tuple[str, Any]]:
    if not node_outputs:
        return []
    if isinstance(node_outputs, Mapping):
        return [(str(k), v) for k, v in node_outputs.items()]
    pairs = []
    for item in node_outputs:
        node_id = item.get("nodeId") or item.get("node_id")
        if node_id:
            pairs.append((str(node_id), item.get("output")))
    return pairs


def _unsupported_message(node: Node) -> str:
    default = resolve(node.type)
    if default is None:
        return f"Unsupported node type: {node.type}"
    mode = node.data.get("mode")
    if default.provider == PROVIDER_FLOW and mode:
        return f"Unsupported mode {mode} for node type {node.type}"
    return f"Unsupported operation {_node_operation(node)} for node type {node.type}"


def _failure_message(node: Node, result: OperationResult) -> str:
    message = result.error.message if result.error else "Unknown error"
    return f"Node {node.type} ({node.id}) failed: {message}"


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0] if error.errors() else {}
    return f"Invalid workflow graph: {first.get('msg', 'validation failed')}"


def _format_seconds(value: Optional[float]) -> str:
    if value is None:
        return "0"
    return str(int(value)) if float(value).is_integer() else str(value)


__all__ = ["ExecutionEngine", "CredentialLookup"]
