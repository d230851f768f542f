"""The registry of known project types and the language servers that serve them."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Server:
    """A language server binary and how to start it."""

    name: str
    command: str
    args: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    language_id: str = ""


@dataclass(frozen=True)
class ProjectType:
    """Files that mark a kind of project, and its server candidates in priority order."""

    name: str
    markers: tuple[str, ...]
    servers: tuple[Server, ...]


_TS = ("ts", "tsx", "js", "jsx", "mjs", "cjs")
_PY = ("py", "pyi")
_CPP = ("c", "h", "cpp", "hpp", "cc", "cxx", "hxx")
_RUBY = ("rb", "rake", "gemspec")
_ELIXIR = ("ex", "exs")

KNOWN_PROJECTS: tuple[ProjectType, ...] = (
    ProjectType("go", ("go.mod", "go.work"), (Server("gopls", "gopls", ("serve",), ("go",), "go"),)),
    ProjectType(
        "typescript",
        ("tsconfig.json", "jsconfig.json", "package.json"),
        (
            Server("typescript-language-server", "typescript-language-server", ("--stdio",), _TS, "typescript"),
            Server("vtsls", "vtsls", ("--stdio",), _TS, "typescript"),
        ),
    ),
    ProjectType("rust", ("Cargo.toml",), (Server("rust-analyzer", "rust-analyzer", (), ("rs",), "rust"),)),
    ProjectType(
        "python",
        ("pyproject.toml", "setup.py", "requirements.txt", "Pipfile", "setup.cfg"),
        (
            Server("basedpyright", "basedpyright-langserver", ("--stdio",), _PY, "python"),
            Server("pyright", "pyright-langserver", ("--stdio",), _PY, "python"),
            Server("pylsp", "pylsp", (), _PY, "python"),
            Server("jedi-language-server", "jedi-language-server", (), _PY, "python"),
        ),
    ),
    ProjectType(
        "cpp",
        ("compile_commands.json", "CMakeLists.txt", ".clangd", "Makefile"),
        (
            Server("clangd", "clangd", (), _CPP, "cpp"),
            Server("ccls", "ccls", (), _CPP, "cpp"),
        ),
    ),
    ProjectType(
        "java",
        ("pom.xml", "build.gradle", "build.gradle.kts", ".project"),
        (Server("jdtls", "jdtls", (), ("java",), "java"),),
    ),
    ProjectType(
        "csharp",
        ("*.csproj", "*.sln", "global.json"),
        (
            Server("omnisharp", "OmniSharp", ("-lsp",), ("cs",), "csharp"),
            Server("csharp-ls", "csharp-ls", (), ("cs",), "csharp"),
        ),
    ),
    ProjectType(
        "ruby",
        ("Gemfile", ".ruby-version", "Rakefile"),
        (
            Server("ruby-lsp", "ruby-lsp", (), _RUBY, "ruby"),
            Server("solargraph", "solargraph", ("stdio",), _RUBY, "ruby"),
        ),
    ),
    ProjectType(
        "php",
        ("composer.json", "artisan"),
        (
            Server("intelephense", "intelephense", ("--stdio",), ("php",), "php"),
            Server("phpactor", "phpactor", ("language-server",), ("php",), "php"),
        ),
    ),
    ProjectType("zig", ("build.zig", "zls.json"), (Server("zls", "zls", (), ("zig",), "zig"),)),
    ProjectType(
        "lua",
        (".luarc.json", ".luarc.jsonc", ".luacheckrc"),
        (Server("lua-language-server", "lua-language-server", (), ("lua",), "lua"),),
    ),
    ProjectType(
        "kotlin",
        ("build.gradle.kts", "settings.gradle.kts"),
        (Server("kotlin-language-server", "kotlin-language-server", (), ("kt", "kts"), "kotlin"),),
    ),
    ProjectType(
        "swift", ("Package.swift",), (Server("sourcekit-lsp", "sourcekit-lsp", (), ("swift",), "swift"),)
    ),
    ProjectType(
        "elixir",
        ("mix.exs",),
        (
            Server("elixir-ls", "elixir-ls", (), _ELIXIR, "elixir"),
            Server("lexical", "lexical", (), _ELIXIR, "elixir"),
        ),
    ),
    ProjectType(
        "haskell",
        ("stack.yaml", "cabal.project", "hie.yaml"),
        (
            Server(
                "haskell-language-server",
                "haskell-language-server-wrapper",
                ("--lsp",),
                ("hs", "lhs"),
                "haskell",
            ),
        ),
    ),
    ProjectType(
        "scala", ("build.sbt", ".metals", "build.sc"), (Server("metals", "metals", (), ("scala", "sc"), "scala"),)
    ),
    ProjectType(
        "terraform",
        ("main.tf", "terraform.tf", ".terraform"),
        (Server("terraform-ls", "terraform-ls", ("serve",), ("tf", "tfvars"), "terraform"),),
    ),
    ProjectType(
        "yaml",
        (".yamllint", "mkdocs.yml", "docker-compose.yml"),
        (Server("yaml-language-server", "yaml-language-server", ("--stdio",), ("yaml", "yml"), "yaml"),),
    ),
    ProjectType(
        "docker",
        ("Dockerfile", "Containerfile"),
        (Server("docker-langserver", "docker-langserver", ("--stdio",), ("dockerfile",), "dockerfile"),),
    ),
)