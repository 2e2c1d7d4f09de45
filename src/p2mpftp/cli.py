from __future__ import annotations

import argparse
import json
import logging
import random
from dataclasses import asdict

from .bench import run_benchmark
from .constants import (
    DEFAULT_MSS,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_MS,
    EXIT_FILE_ERROR,
    EXIT_NETWORK_ERROR,
    EXIT_OK,
    EXIT_SHORT_READ,
    MAX_MSS,
)
from .errors import InterfaceError, RetryLimitExceeded, ShortReadError
from .iface import discover_ipv4
from .net import Impairment, UdpEndpoint
from .receiver import Receiver
from .sender import Destination, FanoutSender

log = logging.getLogger(__name__)


def emit(args: argparse.Namespace, payload: dict) -> None:
    print(json.dumps(payload, indent=2) if args.json else payload)


def cmd_recv(args: argparse.Namespace) -> int:
    impair = Impairment(args.loss_prob, random.Random(args.seed))
    try:
        host = args.listen_host or discover_ipv4([args.interface] if args.interface else None)
        udp = UdpEndpoint.listening(host, args.port)
    except (InterfaceError, OSError) as exc:
        log.error("cannot bind receiver: %s", exc)
        return EXIT_NETWORK_ERROR

    with udp:
        try:
            out = open(args.out, "wb")
        except OSError as exc:
            log.error("error opening %s: %s", args.out, exc)
            return EXIT_FILE_ERROR
        log.info("receiver listening on %s:%d; writing to %s", host, args.port, args.out)
        with out:
            metrics = Receiver(udp, out, impair, linger_ms=args.linger_ms).run()

    emit(args, {"role": "receiver", **metrics.as_dict()})
    return EXIT_OK


def cmd_send(args: argparse.Namespace) -> int:
    try:
        f = open(args.file, "rb")
    except OSError as exc:
        log.error("error opening %s: %s", args.file, exc)
        return EXIT_FILE_ERROR

    destinations = []
    with f:
        try:
            for host in args.hosts:
                destinations.append(Destination.open(host, args.port))
            metrics = FanoutSender(
                destinations,
                f,
                mss=args.mss,
                timeout_ms=args.timeout_ms,
                max_retries=args.max_retries,
                parallel=args.parallel,
            ).run()
        except ShortReadError as exc:
            log.error("%s", exc)
            return EXIT_SHORT_READ
        except (OSError, RetryLimitExceeded) as exc:
            log.error("transfer failed: %s", exc)
            return EXIT_NETWORK_ERROR
        finally:
            for dest in destinations:
                dest.close()

    emit(args, {"role": "sender", "destinations": len(destinations), **metrics.as_dict()})
    return EXIT_OK


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        receivers=args.receivers,
        size_bytes=args.size_bytes,
        loss_rate=args.loss_prob,
        mss=args.mss,
        timeout_ms=args.timeout_ms,
        parallel=args.parallel,
    )
    emit(args, {"role": "bench", **asdict(r)})
    return EXIT_OK


def mss_arg(value: str) -> int:
    mss = int(value)
    if not 1 <= mss <= MAX_MSS:
        raise argparse.ArgumentTypeError(f"mss must be between 1 and {MAX_MSS}, got {mss}")
    return mss


def probability_arg(value: str) -> float:
    p = float(value)
    if not 0.0 <= p <= 1.0:
        raise argparse.ArgumentTypeError(f"probability must be within [0, 1], got {p}")
    return p


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="p2mpftp", description="Point-to-multipoint file transfer over UDP (stop-and-wait).")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    p.add_argument("--json", action="store_true", help="print metrics as JSON")
    sub = p.add_subparsers(dest="cmd", required=True)

    send = sub.add_parser("send", help="send a file to one or more receivers")
    send.add_argument("hosts", nargs="+", metavar="HOST")
    send.add_argument("--port", type=int, default=DEFAULT_PORT)
    send.add_argument("--file", required=True)
    send.add_argument("--mss", type=mss_arg, default=DEFAULT_MSS)
    send.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
    send.add_argument("--max-retries", type=int, default=None, help="give up after this many retries (default: never)")
    send.add_argument("--parallel", action="store_true", help="serve destinations concurrently")
    send.set_defaults(func=cmd_send)

    recv = sub.add_parser("recv", help="receive a file and write it to disk")
    recv.add_argument("--port", type=int, default=DEFAULT_PORT)
    recv.add_argument("--out", required=True)
    recv.add_argument("--loss-prob", type=probability_arg, default=0.0, help="simulate inbound segment loss")
    recv.add_argument("--seed", type=int, default=None)
    recv.add_argument("--linger-ms", type=int, default=0, help="re-ack the final segment until quiet for this long")
    where = recv.add_mutually_exclusive_group()
    where.add_argument("--listen-host", default=None)
    where.add_argument("--interface", default=None, help="bind to the address of this interface")
    recv.set_defaults(func=cmd_recv)

    bench = sub.add_parser("bench", help="loopback benchmark with several receivers")
    bench.add_argument("--receivers", type=int, default=2)
    bench.add_argument("--size-bytes", type=int, default=1_000_000)
    bench.add_argument("--loss-prob", type=probability_arg, default=0.0)
    bench.add_argument("--mss", type=mss_arg, default=DEFAULT_MSS)
    bench.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
    bench.add_argument("--parallel", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
