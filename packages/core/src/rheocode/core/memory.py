"""
MemoryManager - 分层记忆加载
读取全局和项目级的 RHEOCODE.md，拼接后追加到系统提示词
"""

from pathlib import Path
from typing import List, Optional

from ..config.base import AgentConfig, USER_SETTINGS_DIR
from ..utils.debug_logger import log_info

MEMORY_FILE_NAME = "RHEOCODE.md"


class MemoryManager:
    """
    记忆文件查找顺序：
    1. 全局 ~/.rheocode/RHEOCODE.md
    2. 项目：从工作目录向上直到包含 .git 的目录（含），由远及近
    """

    def __init__(self, config: AgentConfig, global_dir: Optional[Path] = None):
        self.config = config
        self.global_dir = Path(global_dir or USER_SETTINGS_DIR)

    def find_memory_files(self) -> List[Path]:
        files = []
        global_file = self.global_dir / MEMORY_FILE_NAME
        if global_file.is_file():
            files.append(global_file)

        project_files = []
        current = Path(self.config.get_working_dir()).resolve()
        while True:
            candidate = current / MEMORY_FILE_NAME
            if candidate.is_file() and candidate not in files:
                project_files.append(candidate)
            if (current / ".git").exists() or current.parent == current:
                break
            current = current.parent

        files.extend(reversed(project_files))
        return files

    async def load_hierarchical_memory(self) -> str:
        """返回所有记忆文件内容，每段带来源路径"""
        memories = []
        for memory_file in self.find_memory_files():
            try:
                content = memory_file.read_text(encoding='utf-8').strip()
            except (OSError, UnicodeDecodeError) as e:
                log_info("Memory", f"Skipping unreadable memory file {memory_file}: {e}")
                continue
            if content:
                memories.append(f"--- Context from: {self._get_relative_path(memory_file)} ---\n{content}")

        return "\n\n".join(memories)

    def _get_relative_path(self, file_path: Path) -> str:
        """获取相对路径用于显示"""
        try:
            return str(file_path.relative_to(self.config.get_working_dir()))
        except ValueError:
            return str(file_path)
