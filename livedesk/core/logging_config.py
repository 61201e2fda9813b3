import logging
import logging.config
import sys

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor


def add_opentelemetry_ids(_, __, event_dict: EventDict) -> EventDict:
    """Adds trace_id and span_id to the event when a span is active."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = trace.format_trace_id(span_context.trace_id)
        event_dict["span_id"] = trace.format_span_id(span_context.span_id)
    return event_dict


def service_info_adder(service_name: str, environment: str) -> Processor:
    def add_service_info(_, __, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("env", environment)
        return event_dict

    return add_service_info


def drop_color_message_key(_, __, event_dict: EventDict) -> EventDict:
    # uvicorn duplicates the message with ANSI codes under this key
    event_dict.pop("color_message", None)
    return event_dict


def setup_structlog(
    json_logs: bool = False,
    log_level: str = "INFO",
    service_name: str = "livedesk",
    environment: str = "development",
):
    """
    Route structlog and stdlib logging through one ProcessorFormatter so
    uvicorn, motor and our own loggers share a single output format.
    """
    level = log_level.upper()
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        service_info_adder(service_name, environment),
        add_opentelemetry_ids,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        drop_color_message_key,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "()": "structlog.stdlib.ProcessorFormatter",
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.JSONRenderer()
                        if json_logs
                        else structlog.dev.ConsoleRenderer(colors=True),
                    ],
                    "foreign_pre_chain": shared_processors,
                },
            },
            "handlers": {
                "default": {
                    "level": level,
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "": {"handlers": ["default"], "level": level, "propagate": True},
                "uvicorn": {"handlers": [], "level": level, "propagate": True},
                "uvicorn.error": {"handlers": [], "level": level, "propagate": True},
                "uvicorn.access": {"handlers": [], "propagate": False},
                "pymongo": {"handlers": [], "level": "WARNING", "propagate": True},
            },
        }
    )

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        structlog.get_logger("uncaught_exception").error(
            "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = handle_exception
