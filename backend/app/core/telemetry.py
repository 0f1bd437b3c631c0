"""OpenTelemetry 계측 설정

- 트레이서/미터 초기화 (OTLP gRPC 수출)
- FastAPI, httpx 자동 계측
- 초대 발송, 참여자 동기화, 녹화 저장, 외부 API 호출 시간 메트릭
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.semconv.resource import ResourceAttributes

from app.core.config import Settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

METRICS_EXPORT_INTERVAL_MS = 15000


def init_telemetry(settings: Settings, service_name: str, service_version: str) -> metrics.Meter:
    """Tracer / Meter Provider 등록 후 서비스 Meter 반환"""
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: settings.app_env,
        }
    )

    # 트레이스는 계측만 하고 수출하지 않음
    trace.set_tracer_provider(TracerProvider(resource=resource))

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True),
        export_interval_millis=METRICS_EXPORT_INTERVAL_MS,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info(
        "Telemetry initialized: service=%s, endpoint=%s",
        service_name,
        settings.otel_exporter_otlp_endpoint,
    )
    return metrics.get_meter(service_name, service_version)


def instrument_fastapi(app: FastAPI) -> None:
    """FastAPI 자동 계측"""
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def instrument_httpx() -> None:
    """Stream / AssemblyAI 호출(httpx) 자동 계측"""
    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

        HTTPXClientInstrumentor().instrument()
    except Exception as e:
        logger.warning("Failed to instrument HTTPX: %s", e)


class WISMeetMetrics:
    """WISMeet 커스텀 메트릭"""

    def __init__(self, meter: metrics.Meter):
        self.invitations_sent_total = meter.create_counter(
            name="wismeet_invitations_sent_total",
            description="초대 메일 발송 결과 (success/failed)",
        )
        self.reconcile_added_total = meter.create_counter(
            name="wismeet_reconcile_added_total",
            description="동기화로 채팅 채널에 추가된 참여자 수",
        )
        self.recordings_saved_total = meter.create_counter(
            name="wismeet_recordings_saved_total",
            description="저장된 녹화 메타데이터 수",
        )
        self.vendor_request_duration = meter.create_histogram(
            name="wismeet_vendor_request_duration_seconds",
            description="외부 API(Stream 등) 호출 시간",
            unit="s",
        )


_wismeet_metrics: WISMeetMetrics | None = None


def record_counter(name: str, amount: int = 1, attributes: dict[str, str] | None = None) -> None:
    """커스텀 카운터 증가 (telemetry 미초기화 시 무시)"""
    if _wismeet_metrics is None or amount <= 0:
        return
    counter = getattr(_wismeet_metrics, name, None)
    if counter is not None:
        counter.add(amount, attributes or {})


@contextmanager
def timed_vendor_call(vendor: str, operation: str) -> Iterator[None]:
    """외부 API 호출 시간 기록

    Usage:
        with timed_vendor_call("stream", "POST /channels"):
            response = await client.request(...)
    """
    started = time.perf_counter()
    outcome = "success"
    try:
        yield
    except Exception:
        outcome = "error"
        raise
    finally:
        if _wismeet_metrics is not None:
            _wismeet_metrics.vendor_request_duration.record(
                time.perf_counter() - started,
                {"vendor": vendor, "operation": operation, "outcome": outcome},
            )


def setup_telemetry(settings: Settings, service_name: str, service_version: str = "0.1.0") -> None:
    """전역 telemetry 설정 (lifespan 시작 시 1회)"""
    global _wismeet_metrics

    if _wismeet_metrics is not None:
        logger.warning("Telemetry already initialized, skipping")
        return

    _wismeet_metrics = WISMeetMetrics(init_telemetry(settings, service_name, service_version))
    instrument_httpx()
