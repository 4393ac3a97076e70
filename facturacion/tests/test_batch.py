"""Tests for facturacion.afip.batch."""

from __future__ import annotations

import datetime as dt
from unittest import mock

from django.test import SimpleTestCase

from facturacion.afip import batch
from facturacion.afip.auth import AuthenticationError, Session, SessionManager
from facturacion.afip.builder import UnsupportedTaxRateError
from facturacion.afip.client import AuthorizationClient, SubmissionUncertainError
from facturacion.afip.codec import WSFE_NS, WSFECodec
from facturacion.afip.documents import AuthorizationResult, Message, Outcome
from facturacion.afip.http import TransportError, TransportTimeout

from .helpers import (
    NOT_FOUND_MESSAGE,
    approved_response,
    consulted_response,
    errors_response,
    invoice_b,
    last_authorized_response,
    make_config,
)


def _approved(number: int) -> AuthorizationResult:
    return AuthorizationResult(
        outcome=Outcome.APPROVED,
        document_type=6,
        point_of_sale=1,
        number=number,
        authorization_code=f"7612345678{number:04d}",
        authorization_expiry=dt.date(2026, 10, 28),
    )


def _rejected(number: int) -> AuthorizationResult:
    return AuthorizationResult(
        outcome=Outcome.REJECTED,
        document_type=6,
        point_of_sale=1,
        number=number,
        observations=(Message(code=10016, message="El numero o fecha del comprobante no se corresponde con el proximo a autorizar."),),
    )


class FixedIntervalPacerTests(SimpleTestCase):
    def test_first_call_never_sleeps(self) -> None:
        sleep = mock.Mock()
        pacer = batch.FixedIntervalPacer(1.0, clock=mock.Mock(return_value=10.0), sleep=sleep)

        pacer.wait()

        sleep.assert_not_called()

    def test_keeps_minimum_interval(self) -> None:
        sleep = mock.Mock()
        clock = mock.Mock(side_effect=[0.0, 0.25, 1.0, 5.0, 5.0])
        pacer = batch.FixedIntervalPacer(1.0, clock=clock, sleep=sleep)

        pacer.wait()
        pacer.wait()
        pacer.wait()

        self.assertEqual(sleep.call_count, 1)
        self.assertAlmostEqual(sleep.call_args.args[0], 0.75)

    def test_negative_interval_is_zero(self) -> None:
        self.assertEqual(batch.FixedIntervalPacer(-3).interval, 0.0)


class RetryPolicyTests(SimpleTestCase):
    def test_only_infrastructure_errors_are_retried(self) -> None:
        policy = batch.RetryPolicy(max_attempts=3)

        self.assertTrue(policy.should_retry(TransportError("caído"), 1))
        self.assertTrue(policy.should_retry(AuthenticationError("WSAA"), 2))
        self.assertTrue(
            policy.should_retry(SubmissionUncertainError("sin respuesta", point_of_sale=1, document_type=6, number=43), 1)
        )
        self.assertFalse(policy.should_retry(TransportError("caído"), 3))
        self.assertFalse(policy.should_retry(UnsupportedTaxRateError("15%"), 1))
        self.assertFalse(policy.should_retry(ValueError("otro"), 1))

    def test_linear_backoff(self) -> None:
        policy = batch.RetryPolicy(max_attempts=3, backoff=2.0)

        self.assertEqual([policy.delay(attempt) for attempt in (1, 2, 3)], [2.0, 4.0, 6.0])


class BatchAuthorizerTests(SimpleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.client = mock.Mock(spec=AuthorizationClient)
        self.recorder = mock.Mock()
        self.sleep = mock.Mock()
        self.documents = {"d1": invoice_b(reference="d1"), "d2": invoice_b(reference="d2"), "d3": invoice_b(reference="d3")}

    def _authorizer(self, **kwargs) -> batch.BatchAuthorizer:
        kwargs.setdefault("pacer", batch.FixedIntervalPacer(0))
        return batch.BatchAuthorizer(
            self.client,
            self.documents.__getitem__,
            recorder=self.recorder,
            sleep=self.sleep,
            **kwargs,
        )

    def test_failure_does_not_abort_the_batch(self) -> None:
        failure = TransportError("Error de red llamando a wsfe")
        self.client.authorize.side_effect = [_approved(1), failure, _approved(2)]

        result = self._authorizer().authorize_batch(["d1", "d2", "d3"])

        self.assertEqual(result.succeeded, ["d1", "d3"])
        self.assertEqual(len(result.failed), 1)
        self.assertEqual(result.failed[0].document_id, "d2")
        self.assertIs(result.failed[0].exception, failure)
        self.assertEqual(result.total, 3)
        self.assertEqual(
            self.recorder.record.call_args_list,
            [mock.call("d1", result.results["d1"]), mock.call("d3", result.results["d3"])],
        )
        self.recorder.record_failure.assert_called_once_with("d2", failure)

    def test_documents_are_processed_in_order(self) -> None:
        self.client.authorize.side_effect = [_approved(1), _approved(2), _approved(3)]

        self._authorizer().authorize_batch(["d3", "d1", "d2"])

        references = [call.args[0].reference for call in self.client.authorize.call_args_list]
        self.assertEqual(references, ["d3", "d1", "d2"])

    def test_rejections_are_failures_with_messages(self) -> None:
        self.client.authorize.side_effect = [_rejected(1)]

        result = self._authorizer().authorize_batch(["d1"])

        self.assertEqual(result.succeeded, [])
        self.assertIn("10016", result.failed[0].error)
        self.assertIs(result.failed[0].result, result.results["d1"])
        self.recorder.record.assert_called_once()

    def test_retries_record_every_attempt(self) -> None:
        failure = TransportError("Error de red llamando a wsfe")
        self.client.authorize.side_effect = [failure, _approved(1)]

        result = self._authorizer(retry_policy=batch.RetryPolicy(max_attempts=2, backoff=2.0)).authorize_batch(["d1"])

        self.assertEqual(result.succeeded, ["d1"])
        self.recorder.record_failure.assert_called_once_with("d1", failure)
        self.recorder.record.assert_called_once()
        self.sleep.assert_called_once_with(2.0)

    def test_rejections_are_never_retried(self) -> None:
        self.client.authorize.side_effect = [_rejected(1), _approved(1)]

        self._authorizer(retry_policy=batch.RetryPolicy(max_attempts=3)).authorize_batch(["d1"])

        self.client.authorize.assert_called_once()

    def test_mapping_errors_are_not_retried(self) -> None:
        self.client.authorize.side_effect = UnsupportedTaxRateError("Alícuota de IVA no soportada por AFIP: 15%")

        result = self._authorizer(retry_policy=batch.RetryPolicy(max_attempts=3)).authorize_batch(["d1"])

        self.client.authorize.assert_called_once()
        self.assertEqual(result.failed[0].error, "Alícuota de IVA no soportada por AFIP: 15%")

    def test_loader_errors_are_failures(self) -> None:
        self.client.authorize.side_effect = [_approved(1)]

        result = self._authorizer().authorize_batch(["missing", "d1"])

        self.assertEqual(result.succeeded, ["d1"])
        self.assertEqual(result.failed[0].document_id, "missing")
        self.recorder.record_failure.assert_not_called()

    def test_calls_are_paced(self) -> None:
        self.client.authorize.side_effect = [_approved(1), _approved(2)]
        pacer = mock.Mock(spec=batch.FixedIntervalPacer)

        self._authorizer(pacer=pacer).authorize_batch(["d1", "d2"])

        self.assertEqual(pacer.wait.call_count, 2)

    def test_uncertain_submission_is_reconciled_before_resubmitting(self) -> None:
        uncertain = SubmissionUncertainError("sin respuesta", point_of_sale=1, document_type=6, number=43)
        self.client.authorize.side_effect = [uncertain]
        self.client.reconcile.return_value = _approved(43)

        result = self._authorizer(retry_policy=batch.RetryPolicy(max_attempts=2)).authorize_batch(["d1"])

        self.assertEqual(result.succeeded, ["d1"])
        self.assertEqual(result.results["d1"].number, 43)
        self.client.authorize.assert_called_once()
        self.client.reconcile.assert_called_once_with(self.documents["d1"], uncertain)
        self.recorder.record_failure.assert_called_once_with("d1", uncertain)
        self.recorder.record.assert_called_once_with("d1", result.results["d1"])

    def test_unregistered_number_is_submitted_again(self) -> None:
        uncertain = SubmissionUncertainError("sin respuesta", point_of_sale=1, document_type=6, number=43)
        self.client.authorize.side_effect = [uncertain, _approved(43)]
        self.client.reconcile.return_value = None

        result = self._authorizer(retry_policy=batch.RetryPolicy(max_attempts=2)).authorize_batch(["d1"])

        self.assertEqual(result.succeeded, ["d1"])
        self.assertEqual(self.client.authorize.call_count, 2)
        self.client.reconcile.assert_called_once()


class AuthorityDouble:
    """WSFEv1 stand-in that keeps its own counter and authorized records."""

    def __init__(self, last_number: int, lose_answers: int = 0, drop_requests: int = 0) -> None:
        self.last_number = last_number
        self.lose_answers = lose_answers
        self.drop_requests = drop_requests
        self.submitted: list[int] = []
        self.codec = WSFECodec(20123456786)

    def __call__(self, url: str, body: str, soap_action: str) -> str:
        operation = soap_action[len(WSFE_NS):]
        request = self.codec.parse_envelope(body).payload
        if operation == "FECompUltimoAutorizado":
            return last_authorized_response(self.last_number)
        if operation == "FECompConsultar":
            number = request["FeCompConsReq"]["CbteNro"]
            if number in self.submitted:
                return consulted_response(number)
            return errors_response("FECompConsultar", 602, NOT_FOUND_MESSAGE)

        if self.drop_requests:
            self.drop_requests -= 1
            raise TransportTimeout("Tiempo de espera agotado llamando a wsfe")

        number = request["FeCAEReq"]["FeDetReq"][0]["CbteDesde"]
        self.submitted.append(number)
        self.last_number = number
        if self.lose_answers:
            self.lose_answers -= 1
            raise TransportTimeout("Tiempo de espera agotado llamando a wsfe")
        return approved_response(number)


class LostAnswerTests(SimpleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.sessions = mock.Mock(spec=SessionManager)
        self.sessions.get_session.return_value = Session(
            token="TOKEN",
            signature="SIGN",
            expires_at=dt.datetime(2026, 10, 19, tzinfo=dt.timezone.utc),
        )

    def _run(self, authority: AuthorityDouble) -> batch.BatchResult:
        afip_client = AuthorizationClient(make_config(), soap_post=authority, session_manager=self.sessions)
        authorizer = batch.BatchAuthorizer(
            afip_client,
            {"d1": invoice_b(reference="d1")}.__getitem__,
            pacer=batch.FixedIntervalPacer(0),
            retry_policy=batch.RetryPolicy(max_attempts=2),
            sleep=mock.Mock(),
        )
        return authorizer.authorize_batch(["d1"])

    def test_timed_out_submission_already_authorized_is_not_resubmitted(self) -> None:
        authority = AuthorityDouble(last_number=42, lose_answers=1)

        result = self._run(authority)

        self.assertEqual(authority.submitted, [43])
        self.assertEqual(result.succeeded, ["d1"])
        self.assertEqual(result.results["d1"].number, 43)
        self.assertEqual(result.results["d1"].authorization_code, "76123456789012")

    def test_request_lost_before_reaching_afip_is_sent_again(self) -> None:
        authority = AuthorityDouble(last_number=42, drop_requests=1)

        result = self._run(authority)

        self.assertEqual(authority.submitted, [43])
        self.assertEqual(result.succeeded, ["d1"])
        self.assertEqual(result.results["d1"].number, 43)

    def test_exhausted_retries_leave_the_number_for_follow_up(self) -> None:
        authority = AuthorityDouble(last_number=42, lose_answers=1)
        afip_client = AuthorizationClient(make_config(), soap_post=authority, session_manager=self.sessions)
        authorizer = batch.BatchAuthorizer(
            afip_client,
            {"d1": invoice_b(reference="d1")}.__getitem__,
            pacer=batch.FixedIntervalPacer(0),
        )

        result = authorizer.authorize_batch(["d1"])

        self.assertEqual(result.succeeded, [])
        self.assertIsInstance(result.failed[0].exception, SubmissionUncertainError)
        self.assertEqual(result.failed[0].exception.number, 43)
