"""Generation orchestrator — scaffold, then iterate oracle → gate until the gate passes.

Strategy ladder, tried in order:
    sandbox   full loop inside a SandboxSession
    degraded  oracle completions only, when no sandbox is available or the loop crashed
    chunked   template skeleton, when the whole-run timeout expires
"""

import asyncio
import concurrent.futures
import dataclasses
import logging

from agents.fallback import ChunkedGenerator, DegradedGenerator
from agents.generator import build_initial_prompt, build_task_brief, files_from_output
from agents.patch_composer import compose_fix_prompt, feedback_file_entry
from agents.planner import PlannerAgent
from agents.researcher import ResearcherAgent
from agents.security import SecurityReviewer
from config.defaults import DEFAULTS, get_timeout_config
from config.targets import SETUP_COMMANDS
from core.collector import ArtifactCollector
from core.errors import (GenerationTimeout, MaxIterationsExceeded, SandboxExecutionError,
                         ServiceUnavailable, ValidationFailure)
from core.publisher import LocalPublisher
from core.quality import ValidationGate
from core.scaffold import scaffold_files
from core.state import FileEntry, GenerationResult, Iteration

logger = logging.getLogger(__name__)


def _in_thread(fn, *args):
    """Run fn on its own worker thread and return the concurrent future.

    The thread outlives the event loop if it has to, unlike asyncio.to_thread.
    """
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        return executor.submit(fn, *args)
    finally:
        executor.shutdown(wait=False)


class Orchestrator:
    """Runs one GenerationRequest to a GenerationResult.

    Collaborators are injected once:
        oracle            GenerationOracle
        sandbox_provider  SandboxProvider, or None / an unavailable provider
        classifier        callable(description) -> RequirementModel
        publisher         object with publish(files, target), defaults to LocalPublisher

    Only ServiceUnavailable escapes generate(); every other failure is folded
    into the result's warnings or errors.

    Raises:
        ValueError: If the oracle edits files in place but the sandbox's
            working directories are not on this machine.
    """

    def __init__(self, oracle, sandbox_provider, classifier, publisher=None, config=None):
        if (oracle is not None and oracle.edits_in_place
                and sandbox_provider is not None and sandbox_provider.available
                and not sandbox_provider.local_filesystem):
            raise ValueError(
                f"Oracle '{oracle.name}' edits files in place and cannot reach the "
                f"working directories of the '{sandbox_provider.name}' sandbox"
            )
        self.oracle = oracle
        self.sandbox_provider = sandbox_provider
        self.classifier = classifier
        self.publisher = publisher or LocalPublisher()
        self.config = {**DEFAULTS, **(config or {})}

        self.gate = None
        self.collector = None
        if sandbox_provider is not None:
            self.gate = ValidationGate(sandbox_provider, SecurityReviewer(oracle))
            self.collector = ArtifactCollector(sandbox_provider)
        self.degraded = DegradedGenerator(oracle, self.config["fallback_file_timeout"])
        self.chunked = ChunkedGenerator()
        self.researcher = ResearcherAgent(oracle, self.config["research_timeout"])
        self.planner = PlannerAgent(oracle, self.config["prd_timeout"])

    def generate(self, request, max_iterations=None, timeout=None):
        """Synchronous entry point. Must not be called from a running event loop."""
        return asyncio.run(self.generate_async(request, max_iterations, timeout))

    async def generate_async(self, request, max_iterations=None, timeout=None):
        if self.oracle is None:
            raise ServiceUnavailable("No generation oracle is configured")
        if self.classifier is None:
            raise ServiceUnavailable("No requirement classifier is configured")

        model = self.classifier(request.description)
        max_iterations = self._iteration_limit(max_iterations)
        if timeout is None:
            timeout = get_timeout_config(self.config["env"])["timeout"]
        deadline = asyncio.get_running_loop().time() + timeout

        if self.sandbox_provider is None or not self.sandbox_provider.available:
            logger.info("Strategy: degraded (no sandbox available) for %s", request.project_name)
            result = await self._run_degraded(request, model, timeout, deadline)
        else:
            logger.info("Strategy: sandbox for %s (max %d iterations, %ss budget)",
                        request.project_name, max_iterations, timeout)
            result = await self._run_with_fallbacks(request, model, max_iterations,
                                                    timeout, deadline)

        return self._publish(request, result)

    def _iteration_limit(self, requested):
        limit = self.config["max_iterations"] if requested is None else requested
        return max(1, min(limit, DEFAULTS["hard_max_iterations"]))

    def _oracle_timeout(self):
        if self.config["oracle_timeout"] is not None:
            return self.config["oracle_timeout"]
        return get_timeout_config(self.config["env"])["request_timeout"]

    # ------------------------------------------------------------------
    # Strategy ladder
    # ------------------------------------------------------------------

    async def _run_with_fallbacks(self, request, model, max_iterations, timeout, deadline):
        progress = []
        try:
            return await asyncio.wait_for(
                self._run_sandboxed(request, model, max_iterations, progress), timeout
            )
        except asyncio.TimeoutError:
            error = GenerationTimeout(f"Whole-run timeout of {timeout}s expired after "
                                      f"{len(progress)} completed iteration(s)")
            logger.warning("%s; falling back to chunked generation", error)
            return self.chunked.run(request, model, warnings=(str(error),))
        except Exception as e:
            logger.exception("Sandboxed generation failed; degrading to no-sandbox path")
            reason = f"Sandboxed generation failed: {type(e).__name__}: {e}"
            return await self._run_degraded(request, model, timeout, deadline,
                                            warnings=(reason,))

    async def _run_degraded(self, request, model, timeout, deadline, warnings=()):
        """Degraded generation within whatever is left of the whole-run budget."""
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        try:
            return await asyncio.wait_for(
                self.degraded.run(request, model, warnings=warnings), remaining
            )
        except asyncio.TimeoutError:
            error = GenerationTimeout(f"Whole-run timeout of {timeout}s expired "
                                      f"during degraded generation")
            logger.warning("%s; falling back to chunked generation", error)
            return self.chunked.run(request, model, warnings=(*warnings, str(error)))
        except Exception as e:
            logger.exception("Degraded generation failed")
            return GenerationResult(
                success=False,
                errors=(*warnings, f"Degraded generation failed: {e}"),
                strategy="failed",
            )

    async def _run_sandboxed(self, request, model, max_iterations, progress):
        warnings = []
        prd = ""
        if self.config["research"]:
            prd = await self._research_and_plan(request, warnings)

        session = await self._create_session()
        try:
            result = await self._loop(session, request, model, max_iterations, prd,
                                      warnings, progress)
        except asyncio.CancelledError:
            # Nothing may be awaited once cancelled, so tear down inline
            self._destroy(session)
            raise
        except Exception:
            await asyncio.to_thread(self._destroy, session)
            raise
        await asyncio.to_thread(self._destroy, session)
        return result

    async def _create_session(self):
        future = _in_thread(self.sandbox_provider.create)
        try:
            return await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            # create() keeps going in its thread; destroy the session when it lands
            future.add_done_callback(self._destroy_abandoned)
            raise

    def _destroy_abandoned(self, future):
        if future.cancelled() or future.exception() is not None:
            return
        session = future.result()
        logger.info("Destroying session %s created after cancellation", session.id)
        self._destroy(session)

    def _destroy(self, session):
        try:
            self.sandbox_provider.destroy(session)
        except Exception as e:
            # The session is marked destroyed regardless; the leak is the provider's
            logger.error("Sandbox teardown for %s failed: %s", session.id, e)

    async def _research_and_plan(self, request, warnings):
        research = await self.researcher.run(request)
        warnings.extend(research.warnings)
        try:
            return await self.planner.run(request, research)
        except asyncio.TimeoutError:
            warnings.append(f"PRD generation timed out after {self.planner.timeout}s")
        except Exception as e:
            warnings.append(f"PRD generation failed: {e}")
        return ""

    # ------------------------------------------------------------------
    # Sandboxed loop
    # ------------------------------------------------------------------

    async def _loop(self, session, request, model, max_iterations, prd, warnings, progress):
        brief = build_task_brief(request, model, prd)
        skeleton = scaffold_files(request, model)
        skeleton.append(FileEntry(path=self.config["brief_file"], content=brief))
        await asyncio.to_thread(self.sandbox_provider.write_files, session, skeleton)
        await self._setup(session, warnings)

        iterations = []
        validation = None
        prompt = build_initial_prompt(request, brief)
        for index in range(1, max_iterations + 1):
            logger.info("Iteration %d/%d for %s", index, max_iterations, request.project_name)
            output = await self._invoke_oracle(session, prompt, index, warnings)
            validation = await self.gate.validate(session)
            iterations.append(Iteration(index=index, prompt=prompt, oracle_output=output,
                                        validation=validation))
            progress.append(index)

            if validation.all_passed:
                logger.info("All checks passed on iteration %d", index)
                break

            logger.warning("Iteration %d: %s", index, ValidationFailure(validation))
            feedback = feedback_file_entry(validation, self.config["feedback_file"])
            await asyncio.to_thread(self.sandbox_provider.write_files, session, [feedback])
            prompt = compose_fix_prompt(validation, self.config["feedback_file"])

        files = await asyncio.to_thread(self.collector.collect, session)
        if validation.all_passed:
            # Feedback from an earlier failed round no longer describes the project
            files = [f for f in files if f.path != self.config["feedback_file"]]
        return self._compose(files, validation, iterations, warnings)

    async def _setup(self, session, warnings):
        """Create the venv and install the toolchain. Failures surface through the gate."""
        for command in SETUP_COMMANDS:
            try:
                result = await asyncio.wait_for(
                    asyncio.to_thread(self.sandbox_provider.execute, session, command),
                    command.timeout,
                )
            except asyncio.TimeoutError:
                warnings.append(f"Setup '{' '.join(command.argv())}' timed out "
                                f"after {command.timeout}s")
                continue
            except SandboxExecutionError as e:
                warnings.append(f"Setup '{' '.join(command.argv())}' could not run: {e}")
                continue
            if not result.ok:
                detail = result.error or result.output.strip()[-300:]
                warnings.append(f"Setup '{' '.join(command.argv())}' failed: {detail}")

    async def _invoke_oracle(self, session, prompt, index, warnings):
        """One oracle pass. A failed pass is a warning; the gate still runs."""
        cwd = session.working_directory if self.oracle.edits_in_place else None
        try:
            output = await self.oracle.complete(
                prompt,
                turn_budget=self.config["oracle_turn_budget"],
                cwd=cwd,
                timeout=self._oracle_timeout(),
            )
        except asyncio.TimeoutError:
            warnings.append(f"Iteration {index}: oracle request timed out")
            return ""
        except Exception as e:
            logger.warning("Iteration %d: oracle failed: %s", index, e)
            warnings.append(f"Iteration {index}: oracle failed: {e}")
            return ""

        if not self.oracle.edits_in_place:
            files = files_from_output(output)
            if files:
                try:
                    await asyncio.to_thread(self.sandbox_provider.write_files, session, files)
                except SandboxExecutionError as e:
                    warnings.append(f"Iteration {index}: could not apply oracle files: {e}")
            else:
                logger.info("Iteration %d: oracle returned no files", index)
        return output

    def _compose(self, files, validation, iterations, warnings):
        errors = []
        success = True
        if not validation.all_passed:
            exhausted = MaxIterationsExceeded(len(iterations), validation)
            unresolved = ", ".join(c.check for c in validation.failed_checks)
            message = f"{exhausted}; unresolved checks: {unresolved}"
            if self.config["accept_partial_results"]:
                warnings.append(message)
            else:
                success = False
                errors.append(message)
        return GenerationResult(
            success=success,
            files=tuple(files),
            execution_results=validation,
            warnings=tuple(warnings),
            errors=tuple(errors),
            iterations=tuple(iterations),
            strategy="sandbox",
        )

    def _publish(self, request, result):
        if not request.publish_target or not result.success:
            return result
        try:
            path = self.publisher.publish(result.files, request.publish_target)
        except (OSError, ValueError) as e:
            logger.warning("Publishing to %s failed: %s", request.publish_target, e)
            return dataclasses.replace(
                result, warnings=result.warnings + (f"Publishing failed: {e}",)
            )
        return dataclasses.replace(result, project_path=path)


def create_orchestrator(oracle="anthropic", sandbox="local", config=None):
    """Build an Orchestrator from collaborator names ("anthropic"/"claude-code", "local"/"e2b"/"none")."""
    from agents.oracle import get_oracle
    from core.sandbox import get_sandbox_provider
    from manager.requirements import parse

    return Orchestrator(
        oracle=get_oracle(oracle),
        sandbox_provider=get_sandbox_provider(sandbox),
        classifier=parse,
        config=config,
    )
