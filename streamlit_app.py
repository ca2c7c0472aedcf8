#!/usr/bin/env python3
"""
Owner Statement Generator
Main Streamlit application for owner statement generation
"""

import streamlit as st
from datetime import datetime, timedelta
from typing import Any, Dict
import plotly.graph_objects as go
import logging

from app_config import load_config
from owner_statement import OwnerStatementProcessor, Statement, create_statement_breakdown
from statement_reports import (
    breakdown_dataframe,
    format_rate,
    generate_csv_content,
    generate_report_content,
    invoices_dataframe,
    statement_to_json,
)
from statement_sources import (
    PropertyStore,
    StatementError,
    StatementService,
    create_billing_source,
)

# Page configuration
st.set_page_config(
    page_title="Owner Statement Generator",
    page_icon="🏠",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Initialize session state
if 'config' not in st.session_state:
    st.session_state.config = load_config()

# Configure logging
logging.basicConfig(level=getattr(logging, str(st.session_state.config['log_level']).upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Custom CSS
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        margin-bottom: 2rem;
    }
    .alert-warning {
        background-color: #fff3cd;
        border: 1px solid #ffeaa7;
        border-radius: 0.25rem;
        padding: 1rem;
        margin: 1rem 0;
    }
    .alert-success {
        background-color: #d4edda;
        border: 1px solid #c3e6cb;
        border-radius: 0.25rem;
        padding: 1rem;
        margin: 1rem 0;
    }
</style>
""", unsafe_allow_html=True)


def rebuild_service():
    """Rebuild the statement service from the current configuration"""
    config = st.session_state.config
    st.session_state.processor = OwnerStatementProcessor(config)
    st.session_state.service = StatementService(
        st.session_state.processor,
        PropertyStore.from_config(config),
        create_billing_source(config),
    )


if 'service' not in st.session_state:
    rebuild_service()


def waterfall_chart(statement: Statement, title: str) -> go.Figure:
    breakdown = create_statement_breakdown(statement)
    measures = ["absolute"] + ["relative"] * (len(breakdown) - 2) + ["total"]
    amounts = [float(item['amount']) for item in breakdown]

    fig = go.Figure(go.Waterfall(
        name="Financial Flow",
        orientation="v",
        measure=measures,
        x=[item['line_item'] for item in breakdown],
        textposition="outside",
        text=[f"€{x:,.2f}" for x in amounts],
        y=amounts[:-1] + [0],
        connector={"line": {"color": "rgb(63, 63, 63)"}},
    ))

    fig.update_layout(
        title=title,
        showlegend=False,
        height=400
    )
    return fig


def render_sidebar():
    """Render the sidebar with navigation"""
    st.sidebar.header("🏠 Owner Statement Generator")

    page = st.sidebar.selectbox(
        "Navigate to:",
        ["Dashboard", "Generate Statement", "Configuration", "Help"]
    )

    st.sidebar.markdown("---")

    st.sidebar.subheader("Quick Stats")
    st.sidebar.metric("Properties", len(st.session_state.service.properties))

    st.sidebar.subheader("System Status")
    if st.session_state.service.billing.configured():
        st.sidebar.success("✅ Billing Service Connected")
    else:
        st.sidebar.info("ℹ️ Billing: Demo Mode")

    return page


def render_dashboard():
    """Render the main dashboard"""
    st.markdown('<h1 class="main-header">🏠 Owner Statement Dashboard</h1>', unsafe_allow_html=True)

    defaults = st.session_state.config['default_settings']
    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.metric(label="Properties", value=len(st.session_state.service.properties))
    with col2:
        st.metric(label="Portal Commission", value=f"{format_rate(defaults['portal_commission_percentage'])}%")
    with col3:
        st.metric(label="Cleaning Fee / Invoice", value=f"€{format_rate(defaults['cleaning_fee_per_invoice'])}")
    with col4:
        st.metric(label="Management Fee", value=f"{format_rate(defaults['management_fee_percentage'])}%")

    st.markdown("---")

    col1, col2 = st.columns([2, 1])

    with col1:
        st.subheader("📊 Sample Financial Breakdown")
        properties = st.session_state.service.properties.all()
        if properties:
            sample = properties[0]
            try:
                statement = st.session_state.service.generate_statement(sample.id, "2025-09-01", "2025-09-30")
                st.plotly_chart(waterfall_chart(statement, f"Sample Statement: {sample.name}"),
                                use_container_width=True)
            except StatementError as e:
                st.warning(f"⚠️ Sample statement unavailable: {e}")
        else:
            st.info("ℹ️ No properties configured.")

    with col2:
        st.subheader("🎯 Quick Actions")

        if st.button("🚀 Generate New Statement", type="primary", use_container_width=True):
            st.session_state.current_page = "Generate Statement"
            st.rerun()

        if st.button("⚙️ Configure Settings", use_container_width=True):
            st.session_state.current_page = "Configuration"
            st.rerun()

        st.markdown("---")

        st.subheader("📋 Integration Status")
        if st.session_state.service.billing.configured():
            st.success("✅ Billing Service: Connected")
        else:
            st.info("ℹ️ Billing Service: Demo Mode")
        st.success("✅ Calculations: Active")


def render_generate_statement():
    """Render the statement generation page"""
    st.markdown('<h1 class="main-header">🚀 Generate Owner Statement</h1>', unsafe_allow_html=True)

    properties = st.session_state.service.properties.all()

    with st.form("statement_generation"):
        col1, col2 = st.columns(2)

        with col1:
            st.subheader("Property Selection")
            selected = st.selectbox(
                "Property",
                properties,
                format_func=lambda p: f"#{p.id} {p.name} ({p.owner_display_name})",
                help="Select the property to generate statement for"
            )

        with col2:
            st.subheader("Period")
            last_month_end = datetime.now().replace(day=1) - timedelta(days=1)
            start_date = st.date_input("Start Date", value=last_month_end.replace(day=1))
            end_date = st.date_input("End Date", value=last_month_end)

        submitted = st.form_submit_button("🚀 Generate Owner Statement", type="primary")

        if submitted:
            generate_statement(
                selected.id if selected else None,
                start_date.isoformat() if start_date else None,
                end_date.isoformat() if end_date else None,
            )


def generate_statement(property_id: Any, start_date: Any, end_date: Any):
    """Generate owner statement"""
    with st.spinner("Generating owner statement..."):
        try:
            statement = st.session_state.service.generate_statement(property_id, start_date, end_date)
        except StatementError as e:
            st.error(f"❌ Error generating statement: {e}")
            return
        except Exception as e:
            logger.exception("Unexpected error generating statement for property %s", property_id)
            st.error(f"❌ Error generating statement: {str(e)}")
            return

    st.success("✅ Owner statement generated successfully!")
    display_statement_results(statement)


def display_statement_results(statement: Statement):
    """Display statement generation results"""
    calculations = statement.calculations

    if calculations.final_owner_amount < 0:
        st.markdown("""
        <div class="alert-warning">
            <h4>⚠️ NEGATIVE PAYOUT</h4>
            <p>Deductions exceed gross revenue for this period. Review before paying out.</p>
        </div>
        """, unsafe_allow_html=True)

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.metric("Gross Revenue", f"€{calculations.gross_amount:,.2f}")
    with col2:
        st.metric("Final Owner Amount", f"€{calculations.final_owner_amount:,.2f}")
    with col3:
        st.metric("Management Commission", f"€{calculations.management_commission:,.2f}")
    with col4:
        st.metric("Invoices", statement.invoice_count)

    st.subheader("📊 Financial Breakdown")
    df_breakdown = breakdown_dataframe(statement)
    st.dataframe(df_breakdown, use_container_width=True)
    st.plotly_chart(waterfall_chart(statement, f"Owner Statement: {statement.property.name}"),
                    use_container_width=True)

    st.subheader("🧾 Invoice Details")
    st.dataframe(invoices_dataframe(statement), use_container_width=True)

    st.subheader("📥 Download Reports")
    file_stem = (f"owner_statement_{statement.property.id}_"
                 f"{statement.period.start_date}_{statement.period.end_date}")

    col1, col2, col3 = st.columns(3)

    with col1:
        st.download_button(
            label="📄 Download Statement Report",
            data=generate_report_content(statement),
            file_name=f"{file_stem}.md",
            mime="text/markdown"
        )
    with col2:
        st.download_button(
            label="📊 Download CSV Data",
            data=generate_csv_content(statement),
            file_name=f"{file_stem}.csv",
            mime="text/csv"
        )
    with col3:
        st.download_button(
            label="🧩 Download JSON",
            data=statement_to_json(statement, indent=2),
            file_name=f"{file_stem}.json",
            mime="application/json"
        )


def _rate_overrides(portal: float, cleaning: float, management: float) -> Dict[str, float]:
    defaults = st.session_state.config['default_settings']
    overrides = {}
    if portal != float(defaults['portal_commission_percentage']):
        overrides['portal_commission_percentage'] = portal
    if cleaning != float(defaults['cleaning_fee_per_invoice']):
        overrides['cleaning_fee_per_invoice'] = cleaning
    if management != float(defaults['management_fee_percentage']):
        overrides['management_fee_percentage'] = management
    return overrides


def render_configuration():
    """Render the configuration page"""
    st.markdown('<h1 class="main-header">⚙️ Configuration</h1>', unsafe_allow_html=True)
    config = st.session_state.config
    defaults = config['default_settings']

    st.subheader("🔧 Default Settings")

    with st.form("default_settings"):
        col1, col2 = st.columns(2)

        with col1:
            portal_pct = st.number_input(
                "Portal Commission Percentage",
                min_value=0.0,
                max_value=100.0,
                value=float(defaults['portal_commission_percentage']),
                step=0.1,
                help="Percentage of gross revenue kept by the booking portal"
            )
            cleaning_fee = st.number_input(
                "Cleaning Fee per Invoice",
                min_value=0.0,
                value=float(defaults['cleaning_fee_per_invoice']),
                step=1.0,
                help="Flat amount charged for every invoice in the period"
            )

        with col2:
            mgmt_fee = st.number_input(
                "Management Fee Percentage",
                min_value=0.0,
                max_value=100.0,
                value=float(defaults['management_fee_percentage']),
                step=0.1,
                help="Percentage of revenue after portal commission and cleaning, waived for admin-owned properties"
            )

        if st.form_submit_button("💾 Save Default Settings"):
            config['default_settings'] = {
                'portal_commission_percentage': portal_pct,
                'cleaning_fee_per_invoice': cleaning_fee,
                'management_fee_percentage': mgmt_fee
            }
            rebuild_service()
            st.success("✅ Default settings saved successfully!")
            st.rerun()

    st.markdown("---")

    st.subheader("🏠 Properties")

    with st.expander("➕ Add New Property"):
        with st.form("add_property"):
            new_id = st.number_input("Property ID", min_value=1, step=1)
            new_name = st.text_input("Property Name")
            admin_owned = st.checkbox("Admin-owned", help="The management company owns this property")
            owner_name = st.text_input("Owner Name", help="Ignored for admin-owned properties")
            new_portal = st.number_input("Portal Commission %", value=float(defaults['portal_commission_percentage']), step=0.1)
            new_cleaning = st.number_input("Cleaning Fee per Invoice", value=float(defaults['cleaning_fee_per_invoice']), step=1.0)
            new_mgmt = st.number_input("Management Fee %", value=float(defaults['management_fee_percentage']), step=0.1)

            if st.form_submit_button("➕ Add Property"):
                existing_ids = {int(p['id']) for p in config['properties']}
                if new_name and int(new_id) not in existing_ids:
                    config['properties'].append({
                        'id': int(new_id),
                        'name': new_name,
                        'is_admin_owned': admin_owned,
                        'owner': None if admin_owned or not owner_name else {'name': owner_name}
                    })
                    overrides = _rate_overrides(new_portal, new_cleaning, new_mgmt)
                    if overrides:
                        config['property_overrides'][str(int(new_id))] = overrides
                    rebuild_service()
                    st.success(f"✅ Property '{new_name}' added successfully!")
                    st.rerun()
                else:
                    st.error("❌ Property ID already exists or name is empty!")

    if config['properties']:
        for prop in st.session_state.service.properties.all():
            overrides = config['property_overrides'].get(str(prop.id), {})
            settings = st.session_state.processor.get_property_settings(prop.id)
            with st.expander(f"🏠 #{prop.id} {prop.name}"):
                col1, col2 = st.columns(2)

                with col1:
                    st.write(f"**Portal Commission:** {format_rate(settings.portal_commission_percentage)}%")
                    st.write(f"**Cleaning Fee:** €{format_rate(settings.cleaning_fee_per_invoice)} per invoice")
                    if prop.is_admin_owned:
                        st.write("**Management Fee:** waived")
                    else:
                        st.write(f"**Management Fee:** {format_rate(settings.management_fee_percentage)}%")

                with col2:
                    st.write(f"**Owner:** {prop.owner_display_name}")
                    st.write(f"**Custom Rates:** {'Yes' if overrides else 'No'}")

                if st.button(f"🗑️ Remove {prop.name}", key=f"remove_{prop.id}"):
                    config['properties'] = [p for p in config['properties'] if int(p['id']) != prop.id]
                    config['property_overrides'].pop(str(prop.id), None)
                    rebuild_service()
                    st.success(f"✅ Property '{prop.name}' removed successfully!")
                    st.rerun()
    else:
        st.info("ℹ️ No properties configured.")


def render_help():
    """Render the help page"""
    st.markdown('<h1 class="main-header">❓ Help & Documentation</h1>', unsafe_allow_html=True)

    st.subheader("🚀 Quick Start Guide")

    st.markdown("""
    ### 1. Configure Your Settings
    - Go to **Configuration** page
    - Set default portal commission (default: 15%), cleaning fee (default: €75) and management fee (default: 25%)
    - Add properties, marking those owned by the management company as admin-owned

    ### 2. Generate a Statement
    - Go to **Generate Statement** page
    - Select the property and the start and end date of the period
    - Click "Generate Owner Statement"

    ### 3. Review Results
    - Review the financial breakdown and invoice list
    - Download the report as markdown, CSV or JSON
    """)

    st.markdown("---")

    st.subheader("🧮 Calculation Methodology")

    st.markdown("""
    ```
    Gross Revenue         = sum of invoice values in the period
    Portal Commission     = Gross Revenue × 15%
    Cleaning Fee          = number of invoices × €75
    Management Commission = (Gross Revenue - Cleaning Fee - Portal Commission) × 25%
                            (0 for admin-owned properties)
    Final Owner Amount    = Gross Revenue - Portal Commission - Cleaning Fee - Management Commission
    ```

    - Invoices with a non-numeric value count as €0 but still add a cleaning fee
    - All amounts are rounded to the cent
    - The management commission is not floored at zero, so a period with few small invoices can produce a negative payout
    """)


def main():
    """Main application function"""
    if 'current_page' not in st.session_state:
        st.session_state.current_page = "Dashboard"

    page = render_sidebar()

    if page != st.session_state.current_page:
        st.session_state.current_page = page

    if st.session_state.current_page == "Dashboard":
        render_dashboard()
    elif st.session_state.current_page == "Generate Statement":
        render_generate_statement()
    elif st.session_state.current_page == "Configuration":
        render_configuration()
    elif st.session_state.current_page == "Help":
        render_help()

if __name__ == "__main__":
    main()
