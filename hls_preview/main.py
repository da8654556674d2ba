from __future__ import annotations

import argparse
import json
import logging
import os

from dotenv import load_dotenv

from .api.analysis_api import AnalysisAPI
from .api.download_api import DownloadLinkAPI
from .models import DEFAULT_BLOCKED_DOMAINS, PlaylistAnalysis, ServiceSettings
from .utils.errors import StreamError
from .utils.format_utils import format_bandwidth
from .utils.http_client import HttpClient
from .web.app import run_server

load_dotenv()


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value


def _env_int(name: str) -> int | None:
    value = _env_str(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _env_float(name: str) -> float | None:
    value = _env_str(name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _env_list(name: str) -> list[str] | None:
    raw = _env_str(name)
    if not raw:
        return None
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or None


def _csv_arg(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Preview and analyse public HLS streams.")
    parser.add_argument("--host", default=_env_str("HOST") or "0.0.0.0", help="Interface to listen on")
    parser.add_argument("--port", type=int, default=_env_int("PORT") or 3001, help="Port to listen on")
    parser.add_argument(
        "--worker-base-url",
        default=_env_str("WORKER_BASE_URL") or "https://your-worker.example.com",
        help="Base URL of the external HLS-to-MP4 worker",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=_env_float("REQUEST_TIMEOUT") or 15.0,
        help="Upstream connect/read timeout in seconds",
    )
    parser.add_argument(
        "--blocked-domains",
        type=_csv_arg,
        default=_env_list("BLOCKED_DOMAINS") or list(DEFAULT_BLOCKED_DOMAINS),
        help="Comma-separated hostnames that may not be analysed or downloaded",
    )
    parser.add_argument("--log-level", default=_env_str("LOG_LEVEL") or "INFO", help="Logging level")
    parser.add_argument("--analyze", metavar="URL", help="Analyse one playlist and exit")
    parser.add_argument("--download-link", metavar="URL", help="Print the worker download link and exit")
    parser.add_argument("--quality", metavar="URL", help="Variant URL to pass along with --download-link")
    parser.add_argument("--json", action="store_true", help="Print one-shot results as JSON")
    return parser.parse_args(argv)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def build_settings(args: argparse.Namespace) -> ServiceSettings:
    return ServiceSettings(
        host=args.host,
        port=args.port,
        worker_base_url=args.worker_base_url,
        request_timeout=args.timeout,
        blocked_domains=args.blocked_domains,
    )


def print_analysis(analysis: PlaylistAnalysis) -> None:
    logging.info("Type:       %s", analysis.kind.value)
    logging.info("Live:       %s", "yes" if analysis.is_live else "no (VOD)")
    logging.info("Encrypted:  %s", "yes" if analysis.is_encrypted else "no")
    logging.info("Download:   %s", "allowed" if analysis.downloadable else "not available")
    logging.info("Base URL:   %s", analysis.base_url)
    logging.info("%-10s | %-10s | %s", "Resolution", "Bandwidth", "URL")
    logging.info("%s", "-" * 80)
    for quality in analysis.qualities:
        bandwidth = format_bandwidth(quality.bandwidth) if quality.bandwidth else "-"
        logging.info("%-10s | %-10s | %s", quality.resolution or "auto", bandwidth, quality.url)


def run_analyze(settings: ServiceSettings, url: str, as_json: bool) -> int:
    with HttpClient(timeout=settings.request_timeout) as http_client:
        analysis_api = AnalysisAPI(http_client, settings.blocked_domains)
        try:
            analysis = analysis_api.analyze_blocking(url)
        except StreamError as exc:
            logging.error("%s: %s", exc.title, exc.message)
            return 1
    if as_json:
        print(json.dumps(analysis.to_payload(), indent=2))
    else:
        print_analysis(analysis)
    return 0


def run_download_link(settings: ServiceSettings, url: str, quality: str | None, as_json: bool) -> int:
    download_api = DownloadLinkAPI(settings.worker_base_url, settings.blocked_domains)
    try:
        link = download_api.build(url, quality)
    except StreamError as exc:
        logging.error("%s: %s", exc.title, exc.message)
        return 1
    if as_json:
        print(json.dumps(link.model_dump(by_alias=True), indent=2))
    else:
        logging.info("Download %s from %s", link.filename, link.download_url)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    settings = build_settings(args)

    if args.analyze:
        return run_analyze(settings, args.analyze, args.json)
    if args.download_link:
        return run_download_link(settings, args.download_link, args.quality, args.json)
    if args.quality:
        logging.error("--quality is only valid together with --download-link")
        return 2

    run_server(settings)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
