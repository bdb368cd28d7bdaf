import sys
import time
from pathlib import Path

# 1. 当前脚本的绝对路径: .../Workbook/Main.py
current_file = Path(__file__).resolve()

# 2. 向上回溯一级，找到 LatticeLib 所在的项目根目录
project_root = current_file.parent.parent

# 3. 从 Excel 直接调用时项目未必已安装，把根目录放到搜索路径最前面
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from loguru import logger
import xlwings as xw

from LatticeLib.Applications.BarrierTreeOption import (
    run_barrier_tree_option,
    run_barrier_convergence,
    price_barrier_option,
)
from LatticeLib.Base.Config import BarrierTreeConfig

SHEET_HANDLERS = {
    'BarrierTree_Option': run_barrier_tree_option,
    'BarrierTree_Convergence': run_barrier_convergence,
}


def main():
    wb = xw.Book.caller()
    active_sheet = wb.sheets.active

    start_time = time.time()
    active_sheet.range('H1').value = "Running..."

    handler = SHEET_HANDLERS.get(active_sheet.name)
    if handler is None:
        active_sheet.range('A1').value = "Error: 请在 BarrierTree_Option 或 BarrierTree_Convergence 页面运行"
        return

    try:
        handler(active_sheet)
    except Exception as exc:
        active_sheet.range('H1').value = f"Error: {exc}"
        raise

    end_time = time.time()
    active_sheet.range('H1').value = f"Done in {end_time - start_time:.4f}s"


def run_headless(config_path):
    """不开 Excel，直接用 YAML 配置定价"""
    config = BarrierTreeConfig.load(config_path)
    result = price_barrier_option(config)
    logger.info(f"Greeks: {result['greeks']}")
    return result


if __name__ == "__main__":
    if len(sys.argv) > 1:
        run_headless(sys.argv[1])
    else:
        xw.Book("BarrierTree.xlsm").set_mock_caller()
        main()
