#!/usr/bin/env python3
"""Autocoder HTTP server - runs generation requests as background jobs."""

import logging
import os
import threading
import time
import uuid

from flask import Flask, jsonify, request

from config.defaults import DEFAULTS
from core.errors import ServiceUnavailable
from core.orchestrator import create_orchestrator
from core.state import TARGET_TYPES
from manager.intake import budget_for, build_request
from manager.requirements import parse

logger = logging.getLogger(__name__)

app = Flask(__name__)
history = []

# Generation jobs keyed by job_id: {id: {"status": ..., "result": ..., "created": timestamp}}
_jobs = {}
_jobs_lock = threading.Lock()
_MAX_JOBS = 50  # prevent unbounded memory growth
_JOB_TTL = 3600  # expire jobs after 1 hour

_SANDBOXES = ("local", "e2b", "none")
_ORACLES = ("anthropic", "claude-code")


def _cleanup_jobs():
    """Remove expired jobs. Called under _jobs_lock."""
    now = time.time()
    expired = [jid for jid, job in _jobs.items() if now - job["created"] > _JOB_TTL]
    for jid in expired:
        del _jobs[jid]
    # If still over limit, remove oldest
    if len(_jobs) > _MAX_JOBS:
        by_age = sorted(_jobs.items(), key=lambda x: x[1]["created"])
        for jid, _ in by_age[:len(_jobs) - _MAX_JOBS]:
            del _jobs[jid]


def _store_job(summary):
    """Register a running job and return its ID."""
    job_id = str(uuid.uuid4())[:8]
    with _jobs_lock:
        _cleanup_jobs()
        _jobs[job_id] = {"status": "running", "request": summary, "result": None,
                         "error": None, "created": time.time()}
    return job_id


def _update_job(job_id, **fields):
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job:
            job.update(fields)


def _get_job(job_id):
    """Get a job by ID, or None if not found/expired."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if not job:
            return None
        if time.time() - job["created"] > _JOB_TTL:
            _jobs.pop(job_id, None)
            return None
        return dict(job)


def _run_job(job_id, orchestrator, gen_request, max_iterations, timeout):
    """Background worker: one generation request, result stored on the job."""
    try:
        result = orchestrator.generate(gen_request, max_iterations=max_iterations, timeout=timeout)
    except ServiceUnavailable as e:
        logger.error("Job %s failed: %s", job_id, e)
        _update_job(job_id, status="failed", error=str(e))
        return
    except Exception as e:
        logger.exception("Job %s crashed", job_id)
        _update_job(job_id, status="failed", error=f"{type(e).__name__}: {e}")
        return

    data = result.to_dict()
    _update_job(job_id, status="done", result=data)
    history.append({
        "job_id": job_id,
        "project_name": gen_request.project_name,
        "target_type": gen_request.target_type,
        "success": result.success,
        "strategy": result.strategy,
        "files": len(result.files),
        "warnings": len(result.warnings),
    })


@app.route("/api/targets")
def api_targets():
    return jsonify(list(TARGET_TYPES))


@app.route("/api/generate", methods=["POST"])
def api_generate():
    """Accept a generation request and run it in the background.

    Poll /api/status/<job_id> for the result.
    """
    data = request.get_json(silent=True)
    if not data or not str(data.get("description", "")).strip():
        return jsonify({"error": "Missing description"}), 400

    sandbox = data.get("sandbox", "local")
    oracle = data.get("oracle", "anthropic")
    if sandbox not in _SANDBOXES:
        return jsonify({"error": f"Unknown sandbox '{sandbox}'"}), 400
    if oracle not in _ORACLES:
        return jsonify({"error": f"Unknown oracle '{oracle}'"}), 400

    try:
        gen_request, model = build_request(
            data["description"],
            target_type=data.get("target_type"),
            project_name=data.get("project_name"),
            requirements=data.get("requirements"),
            external_apis=data.get("external_apis"),
            test_scenarios=data.get("test_scenarios"),
            publish_target=data.get("publish_target"),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    budget = budget_for(model)
    try:
        requested = data.get("max_iterations")
        max_iterations = budget["max_iterations"] if requested is None else int(requested)
    except (TypeError, ValueError):
        return jsonify({"error": "max_iterations must be an integer"}), 400
    max_iterations = max(1, min(max_iterations, DEFAULTS["hard_max_iterations"]))
    config = {"research": bool(data.get("research", False))}
    try:
        orchestrator = create_orchestrator(oracle=oracle, sandbox=sandbox, config=config)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    summary = {
        "project_name": gen_request.project_name,
        "target_type": gen_request.target_type,
        "complexity": model.complexity,
        "estimated_development_time": model.estimated_development_time,
        "max_iterations": max_iterations,
    }
    job_id = _store_job(summary)
    worker = threading.Thread(
        target=_run_job,
        args=(job_id, orchestrator, gen_request, max_iterations, budget["timeout"]),
        daemon=True,
    )
    worker.start()

    return jsonify({"job_id": job_id, "status": "running", **summary}), 202


@app.route("/api/status/<job_id>")
def api_status(job_id):
    """Check generation status for a job."""
    job = _get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    return jsonify({
        "job_id": job_id,
        "status": job["status"],
        "request": job["request"],
        "result": job["result"],
        "error": job["error"],
    })


@app.route("/api/parse", methods=["POST"])
def api_parse():
    data = request.get_json(silent=True)
    if not data or not str(data.get("description", "")).strip():
        return jsonify({"error": "Missing description"}), 400
    return jsonify(parse(data["description"]).to_dict())


@app.route("/api/history")
def api_history():
    return jsonify(history)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 5001))
    print(f"Autocoder running at http://localhost:{port}")
    app.run(debug=False, port=port)
