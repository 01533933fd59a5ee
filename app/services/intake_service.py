"""Three-question intake dialogue."""

import logging

from app.schemas.classification import PrecheckEvaluation, QuestionResult
from app.schemas.intake import PrecheckRequest, PrecheckStep
from app.services.ai_service import FIRST_QUESTION, AIService

logger = logging.getLogger(__name__)


class IntakeService:
    """Stateless orchestrator for the intake precheck.

    The client carries the answers between steps; each call runs exactly one
    classification.
    """

    first_question = FIRST_QUESTION

    async def run_step(
        self,
        ai: AIService,
        request: PrecheckRequest,
    ) -> QuestionResult | PrecheckEvaluation:
        """Run one intake step.

        Args:
            ai: Classification use cases
            request: Step name, answers so far and transaction context

        Returns:
            QuestionResult for generate_q2 / generate_q3, PrecheckEvaluation for evaluate
        """
        amount = str(request.transaction_amount)

        if request.step == PrecheckStep.GENERATE_Q2:
            result = await ai.generate_second_question(
                answer1=request.answer1,
                merchant_name=request.merchant_name,
                transaction_amount=amount,
                transaction_date=request.transaction_date,
            )
        elif request.step == PrecheckStep.GENERATE_Q3:
            result = await ai.generate_third_question(
                answer1=request.answer1,
                answer2=request.answer2,
                merchant_name=request.merchant_name,
                transaction_amount=amount,
                transaction_date=request.transaction_date,
            )
        else:
            result = await ai.evaluate_precheck(
                answer1=request.answer1,
                answer2=request.answer2,
                answer3=request.answer3,
                merchant_name=request.merchant_name,
                transaction_amount=amount,
                transaction_date=request.transaction_date,
            )
            logger.info(
                "Precheck for %s: chargeback_possible=%s category=%s",
                request.merchant_name,
                result.chargeback_possible,
                result.category.value if result.category else None,
            )
            return result

        if result.merchant_mismatch:
            logger.info("Merchant mismatch flagged at %s for %s", request.step.value, request.merchant_name)
        return result


intake_service = IntakeService()
