# cloudlet

Tools for running small code workloads inside lightweight virtual machines.

The package holds the pieces of that pipeline that can be used on their own:

- a command-line client that sends a workload to a cloudlet API server,
- the agent logic that builds and runs a workload inside the guest,
- helpers for laying out and packing a guest initramfs,
- argument parsing for the initramfs generator and the VMM,
- the x86-64 boot structures a VMM writes into guest memory before the
  first vCPU starts (GDT, IDT, page tables, MP table, MSRs, CPUID, LAPIC).

## Installation

```
pip install cloudlet
```

Python 3.10 or later is required. The package depends on `requests` and
`tomli`.

## Command-line client

Describe the workload in a TOML file:

```toml
workload-name = "fibonacci"
language = "rust"
action = "prepare-and-run"

[server]
address = "localhost"
port = 50051

[build]
source-code-path = "src/main.rs"
release = true
```

`language` is one of `rust`, `python` or `node`. The file named by
`source-code-path` is read and its text is sent as the workload's code; the
log level is always `info`.

Then run:

```
cloudlet run --config-path workload.toml
```

(`-c` is the short form of `--config-path`.) The client posts the request as
JSON to `http://127.0.0.1:3000/run`, prints `Response: ...` with the body the
server sent back, then `Request successful`. If the configuration file cannot
be read it prints `Could not read file ...` to standard error and exits with
status 1; a network failure is reported on standard error. A configuration
that is not valid TOML or lacks a field raises `ValueError`.

The same steps are available from Python: `cli.read_file()`,
`cli.new_cloudlet_config(toml_text)` returning a `CloudletDtoRequest`, and
`cli.run_request(request, url=...)` returning the response body.

## Library overview

### Request models — `cloudlet.models`

`Language`, `LogLevel`, `ServerConfig`, `BuildConfig` and
`CloudletDtoRequest` describe a workload request.
`CloudletDtoRequest.to_dict()` gives the JSON shape the API expects (enum
values in lower case, `build` with a `source-code-path` key) and
`CloudletDtoRequest.from_dict()` reads it back, raising `ValueError` for a
missing field, a wrong type, an unknown variant or a port outside 0–65535.

### Workload agent — `cloudlet.workload`, `cloudlet.agents`, `cloudlet.runner`

`Config.from_file()` loads a workload configuration. It needs the fields
`workload-name`, `language` (`rust` or `debug`), `action` (`prepare`, `run`
or `prepare-and-run`), `code` and `config-string`; the value of
`config-string` is replaced by the whole text of the file. `Language.parse()`
turns a name into a `Language`. Failures are subclasses of `AgentError`:
`ConfigFileError`, `ConfigParseError`, `InvalidLanguageError` and
`BuildFailedError` (which carries the failing `AgentOutput`).

`create_agent(config)` returns a `RustAgent` for `rust` and a `DebugAgent`
otherwise. Both have `prepare()` and `run()`, returning an `AgentOutput` with
`exit_code`, `stdout` and `stderr`.

- `RustAgent` reads `[build] release` from the configuration text. `prepare()`
  writes a cargo project into a random directory under `/tmp` (or the
  `tmp_dir` given), runs `cargo build` (with `--release` if asked), copies
  the binary to `/tmp/<workload-name>` and removes the project. `run()`
  executes that binary. A non-zero exit code raises `BuildFailedError`.
  `cargo` must be installed.
- `DebugAgent` writes a `debug.txt` marker under `/tmp/<workload-name>` in
  `prepare()`, and in `run()` returns its contents and removes the directory.

`Runner(config, agent=None)` performs the configured action and returns the
last output:

```toml
workload-name = "hello"
language = "rust"
action = "prepare-and-run"
code = 'fn main() { println!("hello"); }'
config-string = ""

[build]
release = false
```

```python
from cloudlet.runner import Runner
from cloudlet.workload import Config

config = Config.from_file("workload.toml")
output = Runner(config).run()
print(output.exit_code, output.stdout)
```

### Initramfs helpers — `cloudlet.fsgen_args`, `cloudlet.initramfs`, `cloudlet.loader`

`fsgen_args.parse_args(argv)` reads the image name, the agent binary path,
`-o/--output` (default `./initramfs.img`), `-t/--tempdir` (default
`/tmp/cloudlet-fs-gen`), `-i/--init`, `--arch` (default `amd64`) and
`-d/--debug` into an `FsGenArgs`. It exits with status 2 when the image name
does not match `is_valid_image_name()` or the agent binary does not exist.

`initramfs.create_init_file(path, initfile)` copies the given init file to
`<path>/init`; an init file must be given. `insert_agent(destination,
agent_path)` copies the agent to `<destination>/agent` with mode 0755.
`generate_initramfs(root_directory, output)` packs the directory into an
lzma-compressed newc cpio archive (needs `sh`, `find`, `cpio` and `xz`).
Failures raise `InitramfsError`.

`loader.unpack_tarball(stream, output_dir)` extracts a gzip-compressed tar
stream, and `loader.get_docker_download_token(session, image_name)` fetches
an anonymous pull token from Docker Hub. Failures raise `ImageLoaderError`;
`ManifestNotFoundError`, `UnsupportedArchitectureError` and
`LayersNotFoundError` are its subclasses.

### VMM boot structures

`GuestMemory` models guest physical memory as disjoint `(start, size)`
ranges with `read`, `write`, `read_u64`, `write_u64` and `address_in_range`;
an access outside the ranges raises `GuestMemoryError`.

```python
from cloudlet.gdt import gdt_entry, kvm_segment_from_gdt
from cloudlet.guest_memory import GuestMemory
from cloudlet.mptable import MPTABLE_START, compute_mp_size, setup_mptable

seg = kvm_segment_from_gdt(gdt_entry(0xA09B, 0x100000, 0xFFFFF), 1)
print(seg.l, seg.type_)   # 1 11

mem = GuestMemory([(MPTABLE_START, compute_mp_size(4))])
setup_mptable(mem, 4)
```

- `cloudlet.gdt`: `gdt_entry()`, the `get_*` field decoders,
  `kvm_segment_from_gdt()` returning a `KvmSegment`, `write_gdt_table()` and
  `write_idt_value()`.
- `cloudlet.vcpu`: `boot_registers()`, `boot_gdt_table()`,
  `configure_special_registers()` (writes the GDT, IDT and identity page
  tables for the first 1 GiB and returns 64-bit mode `SpecialRegisters`),
  `boot_fpu()` and `configure_lapic()`.
- `cloudlet.interrupts`: `get_klapic_reg()`, `set_klapic_reg()` and
  `set_apic_delivery_mode()`.
- `cloudlet.cpuid`: `filter_cpuid()` over `CpuidEntry` values.
- `cloudlet.msrs`: `create_boot_msr_entries()` returning `MsrEntry` values.
- `cloudlet.mptable`: `setup_mptable()` raises `MptableError` carrying an
  `MptableErrorKind`, for example when the table does not fit in memory or
  more than 254 CPUs are asked for.
- `cloudlet.vmm_args`: `parse_args(argv)` for the `cli` command (kernel,
  initramfs, CPU count, memory, host, guest and netmask addresses, `-v`/`-q`
  verbosity; each option can also come from an environment variable such as
  `KERNEL` or `CPUS`), returning `VmmArguments`; `VmmArguments.log_level()`
  maps verbosity to a `logging` level. The `grpc` command returns `None`.

## What the package does not do

- It has no API server: the `cloudlet` client needs one listening at
  `http://127.0.0.1:3000/run`.
- It has no gRPC service for the in-guest agent; the agent classes are used
  directly from Python.
- It does not start or run virtual machines. There is no KVM access and no
  vCPU loop; the boot structures are computed and written into a
  `GuestMemory` model only. `vmm_args` parses arguments but nothing here
  consumes them.
- It does not download or merge image layers; only the token request and the
  layer unpacking are provided, and the initramfs generator has no command of
  its own.

## Running the tests

```
pip install "cloudlet[test]"
pytest
```