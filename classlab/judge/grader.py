"""
Grader: runs a frozen snapshot of test cases through a judge client
"""

import asyncio
import hashlib
import json
from typing import List, Optional

from pydantic import BaseModel

from classlab import config
from classlab import errors
from classlab.judge.client import JudgeClient
from classlab.participation.models import SubmissionStatus


class GradeResult(BaseModel):
    status: SubmissionStatus
    passed_tests: int
    total_tests: int
    message: str
    testcase_digest: str
    failed_case: Optional[dict] = None


def outputs_match(actual: Optional[str], expected: Optional[str]) -> bool:
    return (actual or "").strip() == (expected or "").strip()


def snapshot_digest(test_cases: List[dict]) -> str:
    """sha256 of the snapshot, so a record says exactly what it was graded against"""
    canonical = json.dumps(
        [{"input": tc.get("input", ""), "expected_output": tc.get("expected_output", "")} for tc in test_cases],
        sort_keys=True
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


async def grade(judge: JudgeClient, source_code: str, language: str, test_cases: List[dict]) -> GradeResult:
    """Stops at the first failing case"""
    if not test_cases:
        raise errors.ValidationError("Problem has no test cases")

    snapshot = [dict(tc) for tc in test_cases]
    digest = snapshot_digest(snapshot)
    passed = 0

    for index, tc in enumerate(snapshot):
        result = await judge.execute(source_code, language, tc.get("input", ""))

        if result.has_compile_error:
            message = "Compilation Error"
        elif not outputs_match(result.stdout, tc.get("expected_output")):
            message = f"Wrong answer on test case {index + 1}"
        else:
            passed += 1
            continue

        return GradeResult(
            status=SubmissionStatus.FAILED,
            passed_tests=passed,
            total_tests=len(snapshot),
            message=message,
            testcase_digest=digest,
            failed_case={
                "index": index,
                "is_hidden": tc.get("is_hidden", False),
                "input": tc.get("input", ""),
                "expected_output": (tc.get("expected_output") or "").strip(),
                "actual_output": result.stdout.strip(),
                "compile_error": result.has_compile_error,
                "compile_output": result.compile_output or None,
                "error": result.compile_output or result.stderr or None
            }
        )

    return GradeResult(
        status=SubmissionStatus.PASSED,
        passed_tests=passed,
        total_tests=len(snapshot),
        message="All test cases passed",
        testcase_digest=digest
    )


async def grade_with_timeout(
    judge: JudgeClient,
    source_code: str,
    language: str,
    test_cases: List[dict],
    timeout: float = None
) -> GradeResult:
    try:
        return await asyncio.wait_for(
            grade(judge, source_code, language, test_cases),
            timeout or config.JUDGE_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        raise errors.JudgeTimeout("Grading did not finish in time; nothing was recorded")


async def run_preview(
    judge: JudgeClient,
    source_code: str,
    language: str,
    test_cases: List[dict],
    timeout: float = None
) -> List[dict]:
    """Every visible case, no early exit. Records nothing."""

    async def run_all():
        results = []
        for index, tc in enumerate(test_cases):
            result = await judge.execute(source_code, language, tc.get("input", ""))
            results.append({
                "index": index,
                "input": tc.get("input", ""),
                "expected_output": (tc.get("expected_output") or "").strip(),
                "actual_output": result.stdout.strip(),
                "passed": not result.has_compile_error and outputs_match(result.stdout, tc.get("expected_output")),
                "error": result.compile_output or result.stderr or None
            })
        return results

    try:
        return await asyncio.wait_for(run_all(), timeout or config.JUDGE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise errors.JudgeTimeout("Run did not finish in time")
