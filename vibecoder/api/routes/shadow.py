import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vibecoder.api.deps import get_shadow_validator_dep
from vibecoder.api.models import PendingShadowBuild, PendingShadowBuildsResponse, ShadowBuildReport, ShadowBuildReportResponse, ShadowTestRequest, ShadowTestResponse
from vibecoder.core.security import get_current_user_id
from vibecoder.validation.shadow import CallbackBuildRunner, ShadowValidator

router = APIRouter()
logger = logging.getLogger("vibecoder.api.routes.shadow")


def _callback_runner(validator: ShadowValidator) -> CallbackBuildRunner:
  runner = validator.runner
  if not isinstance(runner, CallbackBuildRunner):
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Shadow builds are not delegated to an external sandbox.")
  return runner


@router.post("/shadow/test", response_model=ShadowTestResponse, dependencies=[Depends(get_current_user_id)])
async def test_code(  # noqa: B008
  payload: ShadowTestRequest,
  validator: ShadowValidator = Depends(get_shadow_validator_dep),  # noqa: B008
) -> ShadowTestResponse:
  """Validate candidate code in isolation before it replaces the live preview."""
  result = await validator.test_code(payload.code)
  return ShadowTestResponse(success=result.success, code=result.code, error=result.error, build_time_ms=result.build_time_ms, request_id=result.request_id)


@router.post("/shadow/cancel", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(get_current_user_id)])
async def cancel_tests(validator: ShadowValidator = Depends(get_shadow_validator_dep)) -> None:  # noqa: B008
  """Resolve the running and queued shadow tests as cancelled."""
  validator.cancel_test()


@router.get("/shadow/pending", response_model=PendingShadowBuildsResponse, dependencies=[Depends(get_current_user_id)])
async def list_pending_builds(validator: ShadowValidator = Depends(get_shadow_validator_dep)) -> PendingShadowBuildsResponse:  # noqa: B008
  """Builds waiting for the external sandbox to report."""
  runner = _callback_runner(validator)
  return PendingShadowBuildsResponse(builds=[PendingShadowBuild(request_id=request_id, code=code) for request_id, code in runner.pending().items()])


@router.post("/shadow/{request_id}/result", response_model=ShadowBuildReportResponse, dependencies=[Depends(get_current_user_id)])
async def report_build_result(  # noqa: B008
  request_id: str,
  payload: ShadowBuildReport,
  validator: ShadowValidator = Depends(get_shadow_validator_dep),  # noqa: B008
) -> ShadowBuildReportResponse:
  """Sandbox callback; reports for unknown or finished builds are ignored."""
  runner = _callback_runner(validator)
  if payload.success:
    accepted = runner.report_success(request_id)
  else:
    accepted = runner.report_error(request_id, payload.error or "Build failed")
  if not accepted:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No pending shadow build with this id.")
  return ShadowBuildReportResponse(accepted=True)
