# todocli

A command-line client for Todoist. It keeps a local copy of your tasks,
projects, sections and labels, so listing reads from disk. Changes are sent to
the Todoist sync API, and the local copy is refreshed afterwards.

## Installation

```
pip install .
```

This installs the `todocli` command. Running it without a command prints the
help text.

## Getting started

On first use, if no configuration file is found and no token is set in the
environment, `todocli` asks for your API token. It writes the token to a new
configuration file with mode `600`:

```
$ todocli sync
Input API Token: token
```

The configuration file is `$XDG_CONFIG_HOME/todoist/config.json`, which is
usually `~/.config/todoist/config.json`. If that file is missing, a
`config.json` in the current directory is read instead. On systems other than
Windows, `todocli` stops with an error when the file in the configuration
directory exists with permissions other than `600`.

Any environment variable named `TODOIST_<KEY>` overrides the setting `<key>`
from the file. For example, `TODOIST_TOKEN` supplies the token.

A configuration file looks like this:

```json
{
  "token": "token",
  "color": true,
  "shortdateformat": "06/01/02(Mon)",
  "shortdatetimeformat": "06/01/02(Mon) 15:04"
}
```

`shortdateformat` and `shortdatetimeformat` set how due dates and completion
dates are shown. They are reference-date layouts. In these layouts `2006` or
`06` is the year, `01` or `Jan` the month, `02` the day, `Mon` the weekday,
`15` the hour, `04` the minute and `05` the second.

The local copy of your data is kept in `$XDG_CACHE_HOME/todoist/cache.json`,
which is usually `~/.cache/todoist/cache.json`. When the configured token
differs from the one in the cached data, `todocli` syncs before it runs the
command. Run `todocli sync` to refresh the copy yourself.

## Commands

| Command | Aliases | What it does |
|---|---|---|
| `list` | `l` | Show all open tasks |
| `show <id>` | | Show the details of one task |
| `completed-list` | `c-l`, `cl` | Show completed tasks (premium accounts) |
| `add <content>` | `a` | Add a task |
| `modify <id>` | `m` | Change a task and move it to a project |
| `close <id>...` | `c` | Close one or more tasks |
| `delete <id>...` | `d` | Delete one or more tasks |
| `labels` | | Show all labels |
| `projects` | | Show all projects, in tree order |
| `add-project <name>` | `ap` | Create a project |
| `karma` | | Show your karma score |
| `sync` | `s` | Refresh the local copy |
| `quick <text>` | `q` | Add a task using Todoist's quick-add syntax |

`add`, `modify`, `close`, `delete`, `add-project` and `quick` sync the local
copy after they make their change.

For `delete` and `modify`, a task ID can be shortened to any prefix that
matches exactly one task. If no task matches the prefix, or more than one
does, the prefix itself is used as the ID.

### Global options

These options go before the command name:

- `--header`: print a header row
- `--color`: colourise the output (or set `"color": true` in the config)
- `--csv`: print CSV instead of aligned columns
- `--debug`: log API requests and responses
- `--namespace`: prefix each task with the names of its parent tasks
- `--indent`: indent subtasks under their parents
- `--project-namespace`: prefix each project with the names of its parent projects

### Command options

- `list`: `-p`/`--priority` sorts the output by priority.
- `show`: `-o`/`--browse` prints each link in the task's content to standard
  error as `Open: <url>`.
- `add`: `-p`/`--priority` (1–4, default 4), `-L`/`--label-names`
  (comma-separated), `-P`/`--project-id`, `-N`/`--project-name`, `-d`/`--date`,
  `-r`/`--reminder` and `--parent-id`/`--parent`.
- `modify`: `-c`/`--content`, `-p`/`--priority`, `-L`/`--label-names`,
  `-P`/`--project-id`, `-N`/`--project-name` and `-d`/`--date`.
- `add-project`: `--color` and `--item-order`.

### Examples

Add a task to a project with labels, a due date and priority 1:

```
todocli add "Write report" --project-name Work --label-names "office, urgent" --date tomorrow --priority 1
```

Add a subtask:

```
todocli add "Collect figures" --parent-id abc123
```

List tasks sorted by priority, with a header and subtasks indented:

```
todocli --header --indent list --priority
```

Show a task and print the links in its content:

```
todocli show abc123 --browse
```

Close two tasks:

```
todocli close abc123 def456
```

Create a project:

```
todocli add-project "Side project" --item-order 3
```

## Priorities

On the command line, priority `1` is the most urgent and `4` is the default.
Tasks are listed with labels `p1` to `p4`, which match the Todoist apps.

## Errors

When a command fails, `todocli` prints `Error:` followed by the reason to
standard error and exits with status 1.

## Limitations

- There is no filter option. `list` and `completed-list` always show every
  task: all open tasks for `list`, and all completed tasks for
  `completed-list`. Filter expressions such as `p1 & #Work` are not supported.
- `show --browse` does not open a browser. It only prints the links, so you can
  open them yourself.