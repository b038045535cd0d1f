"""007: seed service types

Revision ID: 007
Revises: 006
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Prices in cents
    op.execute("""
        INSERT INTO service_types (id, name, price, unit, category, description, sort_order) VALUES
            ('ST-ESCORT-MEDICAL', '陪同就医', 8000, '次', '生活照料', '陪同老人前往医院就医，包括挂号、取药、陪诊等', 1),
            ('ST-SHOPPING', '日常采购', 3500, '次', '生活照料', '帮助老人购买日常生活用品、蔬菜水果等', 2),
            ('ST-HOUSEWORK', '家务帮助', 6000, '次', '生活照料', '帮助老人做饭、打扫卫生、整理房间等', 3),
            ('ST-ERRANDS', '代办事务', 4000, '次', '生活照料', '帮助老人办理缴费、取件、银行业务等', 4),
            ('ST-HEALTH-CHECK', '健康监测', 5000, '次', '健康关怀', '帮助老人测量血压、血糖等健康指标', 5),
            ('ST-MEDICATION', '用药看护', 4500, '次', '健康关怀', '提醒老人按时服药，协助药物管理', 6),
            ('ST-REHAB', '康复陪护', 10000, '小时', '健康关怀', '协助老人进行康复训练和日常护理', 7),
            ('ST-COMPANION', '陪伴聊天', 5000, '小时', '精神陪伴', '陪老人聊天、倾听，提供精神慰藉', 8),
            ('ST-WALK', '陪同散步', 4000, '次', '精神陪伴', '陪同老人外出散步、锻炼身体', 9),
            ('ST-MASSAGE', '按摩理疗', 12000, '次', '精神陪伴', '为老人提供按摩、推拿等理疗服务', 10),
            ('ST-URGENT-VISIT', '紧急上门', 10000, '次', '紧急服务', '紧急情况下快速上门查看老人状况', 11),
            ('ST-URGENT-AFFAIRS', '紧急事务', 8000, '次', '紧急服务', '紧急事务处理，如突发情况协调', 12),
            ('ST-CUSTOM', '定制服务', 0, '次', '定制服务', '根据您的需求定制专属服务，自定义服务内容和价格', 99);
    """)


def downgrade() -> None:
    op.execute("DELETE FROM service_types WHERE id LIKE 'ST-%';")
