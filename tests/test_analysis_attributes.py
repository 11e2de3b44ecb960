"""Tests that a comprehensive analysis completes and all expected attributes are present."""


def test_analysis_attributes_are_accessible(rising_candles):
    """
    Tests that a comprehensive analysis on a synthetic uptrend completes and
    all expected result and indicator attributes are present and accessible.
    """
    from analyzers.comprehensive import ComprehensiveAnalyzer

    analysis = ComprehensiveAnalyzer.analyze_stock("SOFI", rising_candles)

    assert analysis is not None, "Analysis should not be None"

    expected_attributes = [
        'ticker', 'current_price', 'change_percent', 'composite_score',
        'recommendation', 'indicators', 'risk', 'sub_scores', 'pattern',
        'score_history', 'backtest', 'market_cap', 'history_length'
    ]
    missing_attrs = [attr for attr in expected_attributes if not hasattr(analysis, attr)]
    assert not missing_attrs, f"Missing attributes in analysis object: {', '.join(missing_attrs)}"

    indicator_attributes = [
        'rsi', 'sma150', 'vwma', 'macd', 'adx', 'bollinger', 'keltner', 'sar',
        'atr', 'volume_avg20', 'last_volume', 'resistance_level',
        'relative_strength', 'rsi_divergence', 'squeeze_on', 'is_breakout',
        'fib_level', 'weekly_trend', 'support_level'
    ]
    missing_ind = [attr for attr in indicator_attributes if not hasattr(analysis.indicators, attr)]
    assert not missing_ind, f"Missing indicator attributes: {', '.join(missing_ind)}"

    risk_attributes = [
        'entry_price', 'entry_source', 'stop_loss', 'sl_source', 'take_profit',
        'tp_source', 'risk_reward_ratio', 'thesis', 'targets'
    ]
    missing_risk = [attr for attr in risk_attributes if not hasattr(analysis.risk, attr)]
    assert not missing_risk, f"Missing risk attributes: {', '.join(missing_risk)}"
