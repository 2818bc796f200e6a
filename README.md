# sonoplugins

Plugins that run inside a Sonobuoy run against a Kubernetes cluster, plus the
helpers they share for reporting results and progress back to Sonobuoy.

Cluster access goes through `kubectl`, so it must be on the `PATH` and
configured for the cluster you want to examine. The requirement checks also
run shell pipelines through `/bin/bash` that use `jq`.

## Installation

```
pip install .
```

## Commands

### cluster-inventory

Collects nodes, control-plane details (provider, number of master nodes,
whether audit logging is enabled), external DNS reachability, namespaces
(with resource quotas and limit ranges) and the workloads in every namespace,
grouped under their owning controllers.

```
cluster-inventory run --sonobuoy-report /tmp/results/inventory.yaml --json-report /tmp/results/inventory.json
```

`--sonobuoy-report` writes the inventory in the Sonobuoy results-item YAML
format; `--json-report` writes the collected data as JSON. Either may be left
out. Without the `run` subcommand the help text is printed.

### requirements-check

Reads a JSON list of checks from `input.json` (or from
`/tmp/sonobuoy/config/input.json` when `SONOBUOY_K8S_VERSION` is set) and
checks the cluster against them. Supported check types are `k8s_version`,
`provider`, `node` and `deployment`; an unknown type stops the run with an
error.

```
requirements-check
```

An input file might look like:

```json
[
  {"meta": {"name": "min-version", "type": "k8s_version"},
   "k8s_version": {"version": "1.20.0"}},
  {"meta": {"name": "big-nodes", "type": "node"},
   "node": {"label": "role=worker", "cpu": "2", "memory": "4Gi", "count": 2}}
]
```

Results are written to `$SONOBUOY_RESULTS_DIR/sonobuoy_results.yaml`
(or printed when that variable is unset), and when a results directory is
set it is archived and the done file is written so Sonobuoy collects them.

## Library modules

- `sonoplugins.helper` – `get_results_dir()`, `write_done(path)` and `done()`,
  which archives the results directory to `results.tar.gz` and writes the
  done file.
- `sonoplugins.progress` – `ProgressReporter`, which posts progress updates
  to the port in `SONOBUOY_PROGRESS_PORT` and does nothing when it is unset.
- `sonoplugins.results` – `Item`, `aggregate_status()` and
  `SonobuoyResultsWriter`.
- `sonoplugins.quantity` – `parse_quantity()` for Kubernetes resource
  quantities such as `500m` or `16Gi`.
- `sonoplugins.reliability` – `ReliabilityConfig`, `Runner`, `Report` and
  related types: a runner starts each querier object (anything with a
  `start(cfg)` method) in a background thread, `build_report()` waits for
  their results, and `write_report()` writes `reliability.yaml` and a done
  file into a directory.

## Writing your own plugin

```python
from sonoplugins.progress import ProgressReporter
from sonoplugins.results import SonobuoyResultsWriter

writer = SonobuoyResultsWriter.from_environment()
progress = ProgressReporter(total=1)

progress.start_test("example")
writer.add_test("example", "passed", None, "all good")
progress.stop_test("example", failed=False, skipped=False, error=None)

writer.done(write_done_file=True)
```

`SonobuoyResultsWriter.done` aggregates the statuses, writes the YAML results
and, when asked, archives the results directory and writes the done file
through `sonoplugins.helper.done`.

## What this package does not do

- There is no reliability scanner command and no ready-made reliability
  checks (pod disruption budgets, probes, QoS classes, namespace labels).
  `sonoplugins.reliability` supplies the runner and report format only; you
  provide the queriers.
- The cluster inventory does not report CNI configuration, etcd or storage
  drivers.