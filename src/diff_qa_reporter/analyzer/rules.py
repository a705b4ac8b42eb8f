"""
Built-in classification table.

Order matters: the first rule whose patterns match a path decides its
category and priority. Patterns use fnmatch semantics, so `*` also
matches `/`.
"""

from diff_qa_reporter.models.change import Category, ClassificationRule, Priority

DEFAULT_RULES: list[ClassificationRule] = [
    ClassificationRule(
        category=Category.API,
        priority=Priority.CRITICAL,
        patterns=[
            "app/api/*route.ts",
            "app/api/*route.js",
            "app/api/*route.tsx",
            "app/api/*route.mjs",
            "src/app/api/*route.ts",
            "src/app/api/*route.js",
            "pages/api/*",
            "src/pages/api/*",
            "*/routers/*.py",
            "*/routes/*.py",
            "routers/*.py",
            "routes/*.py",
        ],
        description="API route handlers",
    ),
    ClassificationRule(
        category=Category.DATABASE,
        priority=Priority.CRITICAL,
        patterns=[
            "*.prisma",
            "*migrations/*",
            "*.sql",
            "db/schema*",
            "*/db/schema*",
            "drizzle/*",
        ],
        description="Schema definitions and migrations",
    ),
    ClassificationRule(
        category=Category.AUTH,
        priority=Priority.CRITICAL,
        patterns=[
            "*auth*",
            "middleware.ts",
            "src/middleware.ts",
            "*session*",
            "*permission*",
            "*rbac*",
        ],
        description="Authentication, sessions and access control",
    ),
    ClassificationRule(
        category=Category.BUSINESS_LOGIC,
        priority=Priority.HIGH,
        patterns=[
            "lib/*",
            "src/lib/*",
            "services/*",
            "src/services/*",
            "*workflow*.ts",
            "*workflow*.js",
            "*workflow*.py",
            "*palt*",
            "*fitara*",
        ],
        description="Workflow engine, validation rules and services",
    ),
    ClassificationRule(
        category=Category.TYPES,
        priority=Priority.HIGH,
        patterns=[
            "types/*",
            "src/types/*",
            "*.d.ts",
        ],
        description="Shared type definitions",
    ),
    ClassificationRule(
        category=Category.UI_COMPONENT,
        priority=Priority.MEDIUM,
        patterns=[
            "components/ui/*",
            "src/components/ui/*",
            "components/layout/*",
            "src/components/layout/*",
            "components/common/*",
            "src/components/common/*",
            "app/*layout.tsx",
            "app/*page.tsx",
            "src/app/*layout.tsx",
            "src/app/*page.tsx",
        ],
        description="Shared UI components, pages and layouts",
    ),
    ClassificationRule(
        category=Category.TIER_FORM,
        priority=Priority.HIGH,
        patterns=[
            "*tier*",
            "*Tier*",
        ],
        description="Tier-specific procurement forms",
    ),
    ClassificationRule(
        category=Category.UI_COMPONENT,
        priority=Priority.MEDIUM,
        patterns=[
            "*.tsx",
            "*.jsx",
        ],
        description="Remaining React components",
    ),
    ClassificationRule(
        category=Category.STYLING,
        priority=Priority.LOW,
        patterns=[
            "*.css",
            "*.scss",
            "*.sass",
            "*.less",
            "tailwind.config.*",
            "postcss.config.*",
        ],
        description="Stylesheets and styling configuration",
    ),
    ClassificationRule(
        category=Category.CONFIG,
        priority=Priority.MEDIUM,
        patterns=[
            "package.json",
            "package-lock.json",
            "pnpm-lock.yaml",
            "yarn.lock",
            "requirements*.txt",
            "pyproject.toml",
            "tsconfig*.json",
            "next.config.*",
            ".env*",
            "*.config.js",
            "*.config.ts",
            "*.config.mjs",
            "Dockerfile",
            "docker-compose*",
            ".github/*",
            "*.yml",
            "*.yaml",
        ],
        description="Build, dependency and deployment configuration",
    ),
    ClassificationRule(
        category=Category.TESTS,
        priority=Priority.LOW,
        patterns=[
            "*.test.*",
            "*.spec.*",
            "tests/*",
            "test/*",
            "__tests__/*",
            "*/__tests__/*",
            "e2e/*",
            "*test_*.py",
        ],
        description="Automated tests",
    ),
    ClassificationRule(
        category=Category.DOCS,
        priority=Priority.LOW,
        patterns=[
            "*.md",
            "*.mdx",
            "*.rst",
            "*.txt",
            "docs/*",
            "LICENSE*",
        ],
        description="Documentation",
    ),
]

FALLBACK_CATEGORY = Category.OTHER
FALLBACK_PRIORITY = Priority.LOW
