"""
Shared builders and sample sources for the test suite.
"""

from typing import Optional

from diff_qa_reporter.collector.sources import ContentReader
from diff_qa_reporter.models.change import Category, ChangeRecord, Priority
from diff_qa_reporter.models.diff import ChangeStatus


class DictContentReader(ContentReader):
    """Content reader backed by two dicts, for differ tests."""

    def __init__(
        self,
        before: Optional[dict[str, str]] = None,
        after: Optional[dict[str, str]] = None,
        tree: Optional[set[str]] = None,
    ) -> None:
        self.before = before or {}
        self.after = after or {}
        self.tree = tree

    def read_before(self, path: str) -> Optional[str]:
        return self.before.get(path)

    def read_after(self, path: str) -> Optional[str]:
        return self.after.get(path)

    def tree_paths(self) -> Optional[set[str]]:
        return self.tree


def make_record(
    path: str,
    status: ChangeStatus = ChangeStatus.MODIFIED,
    category: Category = Category.API,
    priority: Priority = Priority.CRITICAL,
    source_path: Optional[str] = None,
) -> ChangeRecord:
    """Build a change record without going through the classifier."""
    return ChangeRecord(
        path=path,
        status=status,
        category=category,
        priority=priority,
        source_path=source_path,
    )


def added_file_diff(path: str, content: str) -> str:
    """Unified diff adding a file with the given content."""
    lines = content.splitlines()
    body = "".join(f"+{line}\n" for line in lines)
    return (
        f"diff --git a/{path} b/{path}\n"
        "new file mode 100644\n"
        "index 0000000..1111111\n"
        "--- /dev/null\n"
        f"+++ b/{path}\n"
        f"@@ -0,0 +1,{len(lines)} @@\n"
        f"{body}"
    )


PACKAGE_ROUTE_BASE = """\
import { NextResponse } from "next/server";
import { z } from "zod";
import { getServerSession } from "next-auth";

const UpdatePackageSchema = z.object({
  title: z.string(),
  description: z.string().optional(),
});

export async function GET(request: Request, { params }: { params: { id: string } }) {
  const session = await getServerSession();
  const pkg = await db.package.findUnique({ where: { id: params.id } });
  return NextResponse.json({ id: pkg.id, title: pkg.title, status: pkg.status });
}

export async function PATCH(request: Request, { params }: { params: { id: string } }) {
  const session = await getServerSession();
  const data = UpdatePackageSchema.parse(await request.json());
  const pkg = await db.package.update({ where: { id: params.id }, data });
  return NextResponse.json({ id: pkg.id, title: pkg.title, updatedAt: pkg.updatedAt });
}
"""

PACKAGE_ROUTE_RENAMED_FIELD = PACKAGE_ROUTE_BASE.replace(
    "  title: z.string(),\n",
    "  name: z.string(),\n",
)

PACKAGE_ROUTE_OPTIONAL_FIELD = PACKAGE_ROUTE_BASE.replace(
    "  description: z.string().optional(),\n",
    "  description: z.string().optional(),\n  notes: z.string().optional(),\n",
)

ARCHIVE_ROUTE = """\
import { NextResponse } from "next/server";

export async function POST(request: Request, { params }: { params: { id: string } }) {
  const { reason } = await request.json();
  await db.package.update({ where: { id: params.id }, data: { archived: true, reason } });
  return NextResponse.json({ id: params.id, archived: true });
}
"""

PACKAGE_ROUTE_PATH = "app/api/packages/[id]/route.ts"
ARCHIVE_ROUTE_PATH = "app/api/packages/[id]/archive/route.ts"

