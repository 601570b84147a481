# -*- coding: utf-8 -*-
import logging
import multiprocessing
import queue
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional

import click

from oniongen.config import (
    JOIN_TIMEOUT,
    LOG_FORMAT,
    PROGRESS_BATCH,
    STATUS_INTERVAL,
    STOP_CHECK_INTERVAL,
    OutputMode,
    SearchSetting,
)
from oniongen.errors import OnionGenError
from oniongen.utils.crypto import (
    SeedSource,
    decode_private_key,
    encode_onion_address,
    encode_private_key,
    generate_keypair,
    get_public_key_from_seed,
)
from oniongen.utils.matcher import PatternMatcher
from oniongen.utils.stats import SearchMetrics
from oniongen.utils.writers import format_match_summary, save_bitcoin_keys, save_tor_keypair

POLL_INTERVAL = 1.0


@dataclass(frozen=True)
class Match:
    prefix: str
    onion_address: str
    private_key: str
    attempts: int
    elapsed: float
    worker: int = 0
    saved: bool = False


@dataclass(frozen=True)
class WorkerFailure:
    worker: int
    error: OnionGenError


class GeneratorWorker:
    """
    Generate-encode-match loop of one worker.

    Attempt counts and elapsed time are local to this worker and are what a
    Match reports. A match is only persisted or reported after the worker
    claims one of the `count` result slots, so nothing beyond the target is
    ever written.
    """

    def __init__(
        self,
        index: int,
        matcher,
        setting: SearchSetting,
        intake,
        stop_flag,
        claimed,
        total_attempts=None,
        seed_source: SeedSource = secrets.token_bytes,
    ):
        self.index = index
        self.matcher = matcher
        self.setting = setting
        self.intake = intake
        self.stop_flag = stop_flag
        self.claimed = claimed
        self.total_attempts = total_attempts
        self.seed_source = seed_source
        self.attempts = 0
        self.published = 0
        self.exhausted = False
        self.start_time = time.time()

    @property
    def writes_inline(self) -> bool:
        return self.setting.mode is OutputMode.TOR and isinstance(self.matcher, PatternMatcher)

    def claim_slot(self) -> bool:
        with self.claimed.get_lock():
            if self.claimed.value >= self.setting.count:
                return False
            self.claimed.value += 1
            return True

    def attempt(self) -> Optional[Match]:
        keypair = generate_keypair(self.seed_source)
        self.attempts += 1
        onion_address = encode_onion_address(keypair.public_key)
        prefix = self.matcher.match(onion_address)
        if prefix is None:
            return None
        if not self.claim_slot():
            self.exhausted = True
            return None

        saved = False
        if self.writes_inline:
            # files must exist before the address is announced
            save_tor_keypair(onion_address, keypair.public_key, keypair.seed, self.setting.output_dir)
            saved = True
        if isinstance(self.matcher, PatternMatcher):
            click.echo(onion_address)

        match = Match(
            prefix=prefix,
            onion_address=onion_address,
            private_key=encode_private_key(keypair.seed),
            attempts=self.attempts,
            elapsed=time.time() - self.start_time,
            worker=self.index,
            saved=saved,
        )
        self.intake.put(match)
        return match

    def publish_progress(self, force: bool = False) -> None:
        if self.total_attempts is None:
            return
        pending = self.attempts - self.published
        if pending <= 0 or (pending < PROGRESS_BATCH and not force):
            return
        with self.total_attempts.get_lock():
            self.total_attempts.value += pending
        self.published = self.attempts

    def run(self) -> None:
        self.start_time = time.time()
        try:
            while not self.exhausted and not self.stop_flag.is_set():
                for _ in range(STOP_CHECK_INTERVAL):
                    self.attempt()
                    if self.exhausted:
                        break
                self.publish_progress()
        except KeyboardInterrupt:
            pass
        except OnionGenError as e:
            logging.error("Worker {} failed: {}".format(self.index, e))
            self.fail(e)
        except Exception as e:
            logging.exception("Worker {} error".format(self.index))
            self.fail(OnionGenError("Worker {} failed: {}".format(self.index, e)))
        finally:
            self.publish_progress(force=True)

    def fail(self, error: OnionGenError) -> None:
        self.intake.put(WorkerFailure(worker=self.index, error=error))
        self.stop_flag.set()


def search_worker(index, matcher, setting, intake, stop_flag, claimed, total_attempts, seed_source):
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    GeneratorWorker(
        index, matcher, setting, intake, stop_flag, claimed, total_attempts, seed_source
    ).run()


class ResultAggregator:
    """Single consumer of the intake queue; owns the completion decision."""

    def __init__(self, setting: SearchSetting, intake, total_attempts=None, processes=None,
                 status_interval: float = STATUS_INTERVAL):
        self.setting = setting
        self.intake = intake
        self.total_attempts = total_attempts
        self.processes = processes or []
        self.status_interval = status_interval
        self.matches: List[Match] = []
        self.start_time = time.time()
        self.last_report = self.start_time

    @property
    def done(self) -> bool:
        return len(self.matches) >= self.setting.count

    def collect(self, match: Match) -> bool:
        """Record a match; returns True once the target count is reached."""
        if self.done:
            logging.warning("Ignoring extra match {} from worker {}".format(match.onion_address, match.worker))
            return True
        self.matches.append(match)
        logging.info("Match {}/{}: {}.onion (worker {})".format(
            len(self.matches), self.setting.count, match.onion_address, match.worker
        ))
        return self.done

    def metrics(self) -> SearchMetrics:
        total = self.total_attempts.value if self.total_attempts is not None else 0
        return SearchMetrics(
            total_keys=total,
            elapsed=time.time() - self.start_time,
            matches=len(self.matches),
            target=self.setting.count,
        )

    def log_progress(self) -> None:
        now = time.time()
        if now - self.last_report < self.status_interval:
            return
        self.last_report = now
        logging.info("Searching... {}".format(self.metrics().describe()))

    def check_workers(self) -> None:
        if self.processes and not any(p.is_alive() for p in self.processes):
            raise OnionGenError("All workers exited before the target was reached")

    def finalize(self) -> None:
        if len(self.matches) != self.setting.count:
            raise OnionGenError("Refusing to write {} matches, expected {}".format(
                len(self.matches), self.setting.count
            ))
        if self.setting.mode is OutputMode.BITCOIN:
            save_bitcoin_keys(self.matches, self.setting.output_path)
            return
        for match in self.matches:
            if not match.saved:
                seed = decode_private_key(match.private_key)
                save_tor_keypair(
                    match.onion_address, get_public_key_from_seed(seed), seed, self.setting.output_dir
                )
            click.echo(format_match_summary(match))

    def run(self) -> List[Match]:
        while not self.done:
            try:
                record = self.intake.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                self.log_progress()
                self.check_workers()
                continue
            if isinstance(record, WorkerFailure):
                raise record.error
            self.collect(record)
        self.finalize()
        return list(self.matches)


def stop_workers(processes, stop_flag, intake) -> None:
    stop_flag.set()
    for process in processes:
        process.join(JOIN_TIMEOUT)
        if process.is_alive():
            logging.warning("Worker {} did not stop, terminating".format(process.name))
            process.terminate()
            process.join()
    while True:
        try:
            record = intake.get_nowait()
        except queue.Empty:
            break
        if isinstance(record, WorkerFailure):
            logging.warning("Worker {} failed after completion: {}".format(record.worker, record.error))


def run_search(matcher, setting: SearchSetting, seed_source: SeedSource = secrets.token_bytes) -> List[Match]:
    intake = multiprocessing.Queue()
    stop_flag = multiprocessing.Event()
    claimed = multiprocessing.Value("i", 0)
    total_attempts = multiprocessing.Value("Q", 0)
    processes = [
        multiprocessing.Process(
            target=search_worker,
            args=(idx, matcher, setting, intake, stop_flag, claimed, total_attempts, seed_source),
            name="oniongen-worker-{}".format(idx),
            daemon=True,
        )
        for idx in range(setting.workers)
    ]
    logging.info("Generating {} addresses with {} workers ({!r}, {} mode)".format(
        setting.count, setting.workers, matcher, setting.mode.value
    ))
    for process in processes:
        process.start()
    aggregator = ResultAggregator(setting, intake, total_attempts, processes)
    try:
        return aggregator.run()
    finally:
        stop_workers(processes, stop_flag, intake)
        logging.info("Finished: {}".format(aggregator.metrics().describe()))


def measure_keyrate(seconds: float) -> float:
    attempts = 0
    start = time.time()
    while time.time() - start < seconds:
        keypair = generate_keypair()
        encode_onion_address(keypair.public_key)
        attempts += 1
    return attempts / (time.time() - start)


def benchmark(seconds: float, workers: int) -> List[float]:
    with multiprocessing.Pool(workers) as pool:
        return pool.map(measure_keyrate, [seconds] * workers)
