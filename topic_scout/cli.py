"""
CLI: Command Line Interface for Topic Scout

支援 init-config、search 與 history 子命令。
"""

import click
import logging
from pathlib import Path
from typing import Optional

from topic_scout.config import ScoutConfig
from topic_scout.collectors.kw_search import KwSearchClient
from topic_scout.errors import StoreError, TopicScoutError, ValidationError
from topic_scout.models import ReportSnapshot, TopicHistoryRecord
from topic_scout.session import AnalysisSession
from topic_scout.storage.file_store import ExportStore
from topic_scout.storage.history import open_history_store

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_config(config: Optional[str]) -> ScoutConfig:
    if config:
        logger.info(f"Loading config: {config}")
        return ScoutConfig.from_yaml(config)
    return ScoutConfig()


def echo_report(snapshot: ReportSnapshot):
    """輸出報告摘要"""
    click.echo(f"Keyword: {snapshot.keyword} (source={snapshot.data_source})")
    click.echo(f"Total: {snapshot.total}, page {snapshot.page}/{snapshot.total_page}, "
               f"{len(snapshot.articles)} articles")

    click.echo("\nTop liked:")
    for i, article in enumerate(snapshot.top_liked, 1):
        click.echo(f"  {i}. {article.title} (like={article.like_count:,})")

    click.echo("\nTop engagement:")
    for i, article in enumerate(snapshot.top_engagement, 1):
        click.echo(f"  {i}. {article.title} ({article.engagement_rate or 0:.2f}%)")

    if snapshot.keyword_cloud:
        cloud = ', '.join(f"{entry.word}×{entry.count}" for entry in snapshot.keyword_cloud)
        click.echo(f"\nKeyword cloud: {cloud}")

    click.echo("\nInsights:")
    for insight in snapshot.insights:
        click.echo(f"  [{insight.id}] {insight.title}")
        click.echo(f"      {insight.description}")


def echo_history(items):
    if not items:
        click.echo("No topic history yet.")
        return
    for item in items:
        click.echo(f"#{item.id}  {item.created_at}  {item.keyword}  "
                   f"({item.data_source}, {item.article_count} articles)")


@click.group()
@click.option('--config', default=None, help='Config YAML file path')
@click.pass_context
def cli(ctx, config: Optional[str]):
    """Topic Scout: 公众号选题分析 CLI"""
    ctx.obj = load_config(config)


@cli.command()
@click.option('--out', default='config.example.yaml', help='Output config file path')
def init_config(out: str):
    """產生範本設定檔"""
    example_path = Path(__file__).parent.parent / 'config.example.yaml'

    if example_path.exists():
        with open(example_path, 'r', encoding='utf-8') as f:
            content = f.read()
    else:
        content = """# Topic Scout Configuration
timezone: "Asia/Shanghai"
search:
  default_source: mock
history:
  backend: sqlite
  sqlite_path: data/content-factory.db
"""

    with open(out, 'w', encoding='utf-8') as f:
        f.write(content)

    click.echo(f"✓ Config file created: {out}")
    click.echo(f"  Edit this file and run: topic-scout --config {out} search <keyword>")


@cli.command()
@click.argument('keyword')
@click.option('--source', type=click.Choice(['mock', 'remote']), default=None, help='Data source')
@click.option('--page', type=int, default=None, help='Page number')
@click.option('--size', type=int, default=None, help='Page size (1-50)')
@click.option('--period', type=int, default=None, help='Lookback days (1-30)')
@click.option('--no-save', is_flag=True, help='Do not save to topic history')
@click.option('--export', 'export_report', is_flag=True, help='Export report JSON')
@click.pass_obj
def search(cfg: ScoutConfig, keyword: str, source, page, size, period, no_save: bool, export_report: bool):
    """搜尋關鍵詞並產生選題分析"""
    client = KwSearchClient(cfg)
    store = None

    try:
        store = open_history_store(cfg)
        session = AnalysisSession(
            client,
            store,
            auto_save=cfg.history.auto_save and not no_save,
            history_limit=cfg.history.list_limit,
            source_preference=source,
        )
        snapshot = session.search(keyword, page=page, size=size, period=period)

        save_error = None
        try:
            record_id = session.generate_insight()
        except (StoreError, ValidationError) as e:
            record_id = None
            save_error = e

        echo_report(session.build_snapshot())

        if record_id is not None:
            click.echo(f"\n✓ Saved to topic history #{record_id}")
        if save_error is not None:
            click.echo(f"\n✗ Failed to save topic history: {save_error}", err=True)

        if export_report:
            path = session.export(ExportStore(cfg.export.output_dir))
            if path:
                click.echo(f"✓ Exported report to {path}")
            else:
                click.echo("Nothing to export for this search.")

        if not snapshot.articles:
            click.echo("No articles found.")
    except TopicScoutError as e:
        raise click.ClickException(str(e))
    finally:
        client.close()
        if store is not None:
            store.close()


@cli.group()
def history():
    """歷史記錄管理"""
    pass


def _find_record(store, record_id: int) -> TopicHistoryRecord:
    record = store.get(record_id)
    if record is None:
        raise click.ClickException(f"Topic history #{record_id} not found")
    return record


@history.command('list')
@click.option('--limit', type=int, default=None, help='Max records')
@click.pass_obj
def list_history(cfg: ScoutConfig, limit: Optional[int]):
    """列出歷史記錄 (新到舊)"""
    try:
        with open_history_store(cfg) as store:
            echo_history(store.list(limit or cfg.history.list_limit))
    except TopicScoutError as e:
        raise click.ClickException(str(e))


@history.command('show')
@click.argument('record_id', type=int)
@click.pass_obj
def show_history(cfg: ScoutConfig, record_id: int):
    """回放一筆歷史記錄"""
    try:
        with open_history_store(cfg) as store:
            record = _find_record(store, record_id)
            session = AnalysisSession(None, store)
            echo_report(session.load_history(record))
    except TopicScoutError as e:
        raise click.ClickException(str(e))


@history.command('delete')
@click.argument('record_id', type=int)
@click.pass_obj
def delete_history(cfg: ScoutConfig, record_id: int):
    """刪除一筆歷史記錄"""
    try:
        with open_history_store(cfg) as store:
            if not store.delete(record_id):
                raise click.ClickException(f"Topic history #{record_id} not found")
            click.echo(f"✓ Deleted topic history #{record_id}")
            echo_history(store.list(cfg.history.list_limit))
    except TopicScoutError as e:
        raise click.ClickException(str(e))


@history.command('export')
@click.argument('record_id', type=int)
@click.pass_obj
def export_history(cfg: ScoutConfig, record_id: int):
    """將一筆歷史記錄匯出為 JSON"""
    try:
        with open_history_store(cfg) as store:
            record = _find_record(store, record_id)
            session = AnalysisSession(None, store)
            session.load_history(record)
            path = session.export(ExportStore(cfg.export.output_dir))
    except TopicScoutError as e:
        raise click.ClickException(str(e))

    if path is None:
        raise click.ClickException(f"Topic history #{record_id} has no articles to export")
    click.echo(f"✓ Exported report to {path}")


if __name__ == "__main__":
    cli()
