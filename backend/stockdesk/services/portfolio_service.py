# -*- coding: utf-8 -*-
"""
Portfolio Service - 持仓截图两阶段分析

流水线:  IDLE -> EXTRACTING -> AUDITING -> DONE
                      |             |
                      +-> FAILED <--+

- Stage A (Gemini OCR) 必须成功才进入 Stage B
- 任一阶段 HTTP 失败都终止整个流程，只给出一条错误信息，不展示部分结果
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from stockdesk.core.constants import (
    DEFAULT_IMAGE_MIME,
    ERR_MISSING_PORTFOLIO_KEYS,
    ERR_NO_HOLDINGS,
    ERR_NO_IMAGES,
    ERR_VISION_MODEL_NOT_FOUND,
    STEP_AUDITING,
    STEP_EXTRACTING,
)
from stockdesk.core.exceptions import (
    LLMAPIError,
    LLMResponseError,
    PortfolioPipelineError,
    PortfolioValidationError,
)
from stockdesk.core.guard import OperationGuard
from stockdesk.core.llm_client import ImagePayload
from stockdesk.core.parsing import ParseStatus
from stockdesk.schemas.briefing import Language
from stockdesk.schemas.dashboard import Credentials
from stockdesk.schemas.portfolio import (
    ImageInfo,
    PipelineStage,
    PipelineStatus,
    PortfolioAuditResult,
)
from stockdesk.services.audit_service import AuditService
from stockdesk.services.ocr_service import OcrService

logger = logging.getLogger(__name__)


class ImageTray:
    """待分析的截图（上传后累积，可按序号删除）"""

    def __init__(self):
        self._images: List[ImagePayload] = []

    def add(self, data: bytes, mime_type: Optional[str] = None, filename: Optional[str] = None) -> int:
        self._images.append(ImagePayload(data=data, mime_type=mime_type or DEFAULT_IMAGE_MIME, filename=filename))
        return len(self._images) - 1

    def remove(self, index: int) -> bool:
        if 0 <= index < len(self._images):
            del self._images[index]
            return True
        return False

    def clear(self) -> None:
        self._images = []

    @property
    def images(self) -> List[ImagePayload]:
        return list(self._images)

    def describe(self) -> List[ImageInfo]:
        return [
            ImageInfo(index=i, filename=img.filename, mime_type=img.mime_type, size=len(img.data))
            for i, img in enumerate(self._images)
        ]

    def __len__(self) -> int:
        return len(self._images)


class PortfolioPipeline:
    """持仓分析流水线"""

    def __init__(self, ocr: OcrService, auditor: AuditService):
        self.ocr = ocr
        self.auditor = auditor
        self.guard = OperationGuard("portfolio analysis")
        self.stage = PipelineStage.IDLE
        self.step = ""
        self.error: Optional[str] = None
        self.result: Optional[PortfolioAuditResult] = None

    def status(self) -> PipelineStatus:
        return PipelineStatus(
            stage=self.stage,
            step=self.step,
            busy=self.guard.busy,
            error=self.error,
            result=self.result,
        )

    def _fail(self, message: str) -> PortfolioPipelineError:
        self.stage = PipelineStage.FAILED
        self.step = ""
        self.error = message
        self.result = None
        logger.error(f"[Portfolio] Analysis failed: {message}")
        return PortfolioPipelineError(message)

    @staticmethod
    def validate(images: Sequence[ImagePayload], credentials: Credentials, language: Language) -> None:
        """前置校验，失败时不发任何请求"""
        if not credentials.vision_api_key or not credentials.chat_api_key:
            raise PortfolioValidationError(ERR_MISSING_PORTFOLIO_KEYS[language])
        if not images:
            raise PortfolioValidationError(ERR_NO_IMAGES[language])

    async def run(
        self,
        images: Sequence[ImagePayload],
        credentials: Credentials,
        language: Language,
    ) -> PortfolioAuditResult:
        """
        执行两阶段分析

        Raises:
            OperationBusyError: 已有分析在进行
            PortfolioValidationError: 缺图片或缺 Key
            PortfolioPipelineError: 任一阶段失败
        """
        images = list(images)
        async with self.guard.hold():
            self.validate(images, credentials, language)
            self.error = None
            self.result = None

            # ==========================================
            # STAGE A: Gemini Vision 结构化提取
            # ==========================================
            self.stage = PipelineStage.EXTRACTING
            self.step = STEP_EXTRACTING[language]
            try:
                outcome = await self.ocr.extract(images, credentials.vision_api_key)
            except LLMAPIError as e:
                if e.status_code == 404:
                    raise self._fail(ERR_VISION_MODEL_NOT_FOUND[language]) from e
                raise self._fail(f"Gemini Error: {e.status_code or e}") from e
            except LLMResponseError as e:
                raise self._fail(f"Gemini Error: {e}") from e

            if outcome.status is ParseStatus.FAILED or not outcome.value:
                raise self._fail(ERR_NO_HOLDINGS[language])
            positions = outcome.value

            # ==========================================
            # STAGE B: Perplexity 结合成本诊断
            # ==========================================
            self.stage = PipelineStage.AUDITING
            self.step = STEP_AUDITING[language].format(count=len(positions))
            logger.info(f"[Portfolio] {len(positions)} position(s) extracted ({outcome.status.value}), auditing...")
            try:
                report = await self.auditor.audit(positions, language, credentials.chat_api_key)
            except LLMAPIError as e:
                raise self._fail(f"Perplexity Error: {e.status_code or e}") from e
            except LLMResponseError as e:
                raise self._fail(f"Perplexity Error: {e}") from e

            self.result = PortfolioAuditResult(
                report=report,
                positions=positions,
                degraded=outcome.status is ParseStatus.DEGRADED,
                generated_at=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            )
            self.stage = PipelineStage.DONE
            self.step = ""
            logger.info("[Portfolio] Audit completed")
            return self.result
